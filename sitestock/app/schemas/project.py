from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sitestock.app.db.models.core_types import ProjectStatus


class ProjectRead(BaseModel):
    id: int
    name: str
    location: str | None
    description: str | None
    status: ProjectStatus

    class Config:
        from_attributes = True


class ProjectMaterialRead(BaseModel):
    id: int
    project_id: int
    product_id: int
    phase: str | None
    required_quantity: int
    claimed_quantity: int

    class Config:
        from_attributes = True


class TemplateItemRead(BaseModel):
    id: int
    product_id: int
    phase: str | None
    required_quantity: int

    class Config:
        from_attributes = True


class ProjectTemplateRead(BaseModel):
    id: int
    name: str
    description: str | None
    active: bool
    items: list[TemplateItemRead]

    class Config:
        from_attributes = True


class UserProjectRead(BaseModel):
    id: int
    user_id: int
    project_id: int
    created_at: datetime

    class Config:
        from_attributes = True
