from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.project import ProjectMaterialRead, ProjectTemplateRead, TemplateItemRead
from sitestock.services import templates

router = APIRouter(prefix="/project-templates")


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class TemplateItemCreate(BaseModel):
    product_id: int
    required_quantity: int = Field(gt=0)
    phase: str | None = Field(default=None, max_length=64)


class TemplateApply(BaseModel):
    project_id: int


@router.get("", response_model=list[ProjectTemplateRead])
def list_templates(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return templates.list_templates(db)


@router.post("", response_model=ProjectTemplateRead, status_code=201)
def create_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        t = templates.create_template(db, name=payload.name, description=payload.description)
    return ProjectTemplateRead.model_validate(t)


@router.post("/{template_id}/items", response_model=TemplateItemRead, status_code=201)
def add_template_item(
    template_id: int,
    payload: TemplateItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        item = templates.add_template_item(db, template_id=template_id, **payload.model_dump())
    return TemplateItemRead.model_validate(item)


@router.post("/{template_id}/apply", response_model=list[ProjectMaterialRead])
def apply_template(
    template_id: int,
    payload: TemplateApply,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin)),
):
    with unit_of_work(db):
        rows = templates.apply_template(db, template_id=template_id, project_id=payload.project_id, actor=actor)
    return [ProjectMaterialRead.model_validate(m) for m in rows]
