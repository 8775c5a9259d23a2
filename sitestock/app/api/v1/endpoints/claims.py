from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import ClaimStatus, ClaimType, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.claim import ClaimRead
from sitestock.services import claims

router = APIRouter(prefix="/claims")

DECIDERS = (Role.ceo_admin, Role.warehouse_admin)


# ---------- Schemas ----------
class ClaimLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class ClaimCreate(BaseModel):
    project_id: int
    claim_type: ClaimType = ClaimType.standard
    emergency_reason: str | None = None
    notes: str | None = None
    photo_url: str | None = Field(default=None, max_length=512)
    items: list[ClaimLineCreate] = Field(default_factory=list)


class ClaimApprove(BaseModel):
    # {claim_item_id: quantité approuvée}
    approvals: dict[int, int] = Field(default_factory=dict)


class ClaimDeny(BaseModel):
    reason: str = Field(min_length=1)
    notes: str | None = None


# ---------- Endpoints ----------
@router.get("", response_model=list[ClaimRead])
def list_claims(
    project_id: int | None = None,
    status: ClaimStatus | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return claims.list_claims(db, project_id=project_id, status=status)


@router.get("/pending", response_model=list[ClaimRead])
def list_pending(db: Session = Depends(get_db), actor: Actor = Depends(require_role(*DECIDERS))):
    return claims.list_pending_claims(db)


@router.get("/{claim_id}", response_model=ClaimRead)
def get_claim(claim_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return claims.get_claim(db, claim_id)


@router.post("", response_model=ClaimRead, status_code=201)
def create_claim(
    payload: ClaimCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.onsite_team, Role.ceo_admin)),
):
    with unit_of_work(db):
        claim = claims.create_claim(
            db,
            project_id=payload.project_id,
            lines=[(ln.product_id, ln.quantity) for ln in payload.items],
            actor=actor,
            claim_type=payload.claim_type,
            emergency_reason=payload.emergency_reason,
            notes=payload.notes,
            photo_url=payload.photo_url,
        )
    return ClaimRead.model_validate(claim)


@router.post("/{claim_id}/approve", response_model=ClaimRead)
def approve_claim(
    claim_id: int,
    payload: ClaimApprove,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*DECIDERS)),
):
    with unit_of_work(db):
        claim = claims.approve_claim(db, claim_id=claim_id, approvals=payload.approvals, actor=actor)
    return ClaimRead.model_validate(claim)


@router.post("/{claim_id}/deny", response_model=ClaimRead)
def deny_claim(
    claim_id: int,
    payload: ClaimDeny,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*DECIDERS)),
):
    with unit_of_work(db):
        claim = claims.deny_claim(db, claim_id=claim_id, reason=payload.reason, actor=actor, notes=payload.notes)
    return ClaimRead.model_validate(claim)
