from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import ReturnStatus, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.material_return import ReturnRead
from sitestock.services import returns

router = APIRouter(prefix="/returns")

DECIDERS = (Role.ceo_admin, Role.warehouse_admin)


class ReturnLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class ReturnCreate(BaseModel):
    project_id: int
    claim_id: int | None = None
    reason: str = Field(min_length=1)
    notes: str | None = None
    photo_url: str | None = Field(default=None, max_length=512)
    items: list[ReturnLineCreate] = Field(default_factory=list)


class ReturnReject(BaseModel):
    reason: str = Field(min_length=1)
    notes: str | None = None


@router.get("", response_model=list[ReturnRead])
def list_returns(
    status: ReturnStatus | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return returns.list_returns(db, status=status)


@router.get("/pending", response_model=list[ReturnRead])
def list_pending(db: Session = Depends(get_db), actor: Actor = Depends(require_role(*DECIDERS))):
    return returns.list_pending_returns(db)


@router.get("/{return_id}", response_model=ReturnRead)
def get_return(return_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return returns.get_return(db, return_id)


@router.post("", response_model=ReturnRead, status_code=201)
def create_return(
    payload: ReturnCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.onsite_team, Role.ceo_admin)),
):
    with unit_of_work(db):
        ret = returns.create_return(
            db,
            project_id=payload.project_id,
            claim_id=payload.claim_id,
            lines=[(ln.product_id, ln.quantity) for ln in payload.items],
            reason=payload.reason,
            actor=actor,
            notes=payload.notes,
            photo_url=payload.photo_url,
        )
    return ReturnRead.model_validate(ret)


@router.post("/{return_id}/approve", response_model=ReturnRead)
def approve_return(
    return_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*DECIDERS)),
):
    with unit_of_work(db):
        ret = returns.approve_return(db, return_id=return_id, actor=actor)
    return ReturnRead.model_validate(ret)


@router.post("/{return_id}/reject", response_model=ReturnRead)
def reject_return(
    return_id: int,
    payload: ReturnReject,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*DECIDERS)),
):
    with unit_of_work(db):
        ret = returns.reject_return(db, return_id=return_id, reason=payload.reason, actor=actor, notes=payload.notes)
    return ReturnRead.model_validate(ret)
