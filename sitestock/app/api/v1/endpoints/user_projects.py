from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.errors import PermissionDenied
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.project import ProjectRead, UserProjectRead
from sitestock.services import projects

router = APIRouter(prefix="/user-projects")


# ---------- Schemas ----------
class UserProjectAssign(BaseModel):
    user_id: int
    project_id: int


# ---------- Endpoints ----------
@router.get("/{user_id}", response_model=list[ProjectRead])
def list_user_projects(user_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    # l'équipe chantier ne voit que ses propres affectations
    if actor.role == Role.onsite_team and actor.user_id != user_id:
        raise PermissionDenied("Cannot read another user's assignments", field="user_id")
    return projects.list_user_projects(db, user_id)


@router.post("", response_model=UserProjectRead, status_code=201)
def assign_user(
    payload: UserProjectAssign,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        link = projects.assign_user_to_project(db, user_id=payload.user_id, project_id=payload.project_id, actor=actor)
    return UserProjectRead.model_validate(link)
