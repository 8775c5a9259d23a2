from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import Conflict, NotFound
from sitestock.app.db.models.core_types import AuditAction, ProjectStatus
from sitestock.app.db.models.models_v1 import Project, User, UserProject
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit


def create_project(
    db: Session,
    *,
    name: str,
    location: str | None = None,
    description: str | None = None,
    status: ProjectStatus = ProjectStatus.active,
) -> Project:
    p = Project(name=name, location=location, description=description, status=status)
    db.add(p)
    db.flush()
    return p


def get_project(db: Session, project_id: int) -> Project:
    p = db.get(Project, project_id)
    if not p:
        raise NotFound("Project not found", field="project_id")
    return p


def list_projects(db: Session, *, status: ProjectStatus | None = None) -> list[Project]:
    stmt = select(Project).order_by(Project.created_at.desc(), Project.id.desc())
    if status is not None:
        stmt = stmt.where(Project.status == status)
    return list(db.execute(stmt).scalars().all())


def update_project(
    db: Session,
    project_id: int,
    *,
    name: str | None = None,
    location: str | None = None,
    description: str | None = None,
    status: ProjectStatus | None = None,
) -> Project:
    p = get_project(db, project_id)
    if name is not None:
        p.name = name
    if location is not None:
        p.location = location
    if description is not None:
        p.description = description
    if status is not None:
        p.status = status
    return p


# ---------- AFFECTATIONS ----------
def assign_user_to_project(db: Session, *, user_id: int, project_id: int, actor: Actor) -> UserProject:
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found", field="user_id")
    project = get_project(db, project_id)

    exists = db.execute(
        select(UserProject).where(UserProject.user_id == user_id).where(UserProject.project_id == project_id)
    ).scalar_one_or_none()
    if exists:
        raise Conflict("User already assigned to this project", field="project_id")

    link = UserProject(user_id=user_id, project_id=project_id)
    db.add(link)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.user_assigned_to_project,
        description=f"{user.name} assigned to project {project.name}",
        entity_type="project",
        entity_id=project.id,
        meta={"user_id": user_id},
    )
    return link


def list_user_projects(db: Session, user_id: int) -> list[Project]:
    """Projets affectés à un utilisateur, par nom."""
    if not db.get(User, user_id):
        raise NotFound("User not found", field="user_id")
    stmt = (
        select(Project)
        .join(UserProject, UserProject.project_id == Project.id)
        .where(UserProject.user_id == user_id)
        .order_by(Project.name)
    )
    return list(db.execute(stmt).scalars().all())
