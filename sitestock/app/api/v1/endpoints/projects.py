from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import ProjectStatus, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.project import ProjectMaterialRead, ProjectRead
from sitestock.services import ledger, projects

router = APIRouter(prefix="/projects")


# ---------- Schemas ----------
class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    description: str | None = None
    status: ProjectStatus = ProjectStatus.active


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    description: str | None = None
    status: ProjectStatus | None = None


class MaterialCreate(BaseModel):
    product_id: int
    required_quantity: int = Field(ge=0)
    phase: str | None = Field(default=None, max_length=64)


# ---------- Endpoints ----------
@router.get("", response_model=list[ProjectRead])
def list_projects(
    status: ProjectStatus | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return projects.list_projects(db, status=status)


@router.post("", response_model=ProjectRead, status_code=201)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        p = projects.create_project(db, **payload.model_dump())
    return ProjectRead.model_validate(p)


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(project_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return projects.get_project(db, project_id)


@router.patch("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        p = projects.update_project(db, project_id, **payload.model_dump(exclude_unset=True))
    return ProjectRead.model_validate(p)


@router.get("/{project_id}/materials", response_model=list[ProjectMaterialRead])
def list_materials(project_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return ledger.list_materials(db, project_id)


@router.post("/{project_id}/materials", response_model=ProjectMaterialRead, status_code=201)
def add_material(
    project_id: int,
    payload: MaterialCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        m = ledger.add_material(db, project_id=project_id, **payload.model_dump())
    return ProjectMaterialRead.model_validate(m)
