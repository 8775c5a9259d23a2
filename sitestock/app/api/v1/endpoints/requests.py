from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import RequestStatus, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.internal_request import InternalRequestRead
from sitestock.services import requests

router = APIRouter(prefix="/requests")


# ---------- Schemas ----------
class RequestLineCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)


class RequestCreate(BaseModel):
    destination_property: str = Field(min_length=1, max_length=255)
    requester_name: str | None = Field(default=None, max_length=200)
    requester_email: str | None = Field(default=None, max_length=255)
    project_id: int | None = None
    notes: str | None = None
    photo_url: str | None = Field(default=None, max_length=512)
    items: list[RequestLineCreate] = Field(default_factory=list)


class RequestStatusUpdate(BaseModel):
    status: RequestStatus
    # request_item_id -> quantité livrée ; défaut : quantité demandée
    fulfilled_quantities: dict[int, int] = Field(default_factory=dict)
    fulfilled_date: datetime | None = None


# ---------- Endpoints ----------
@router.get("", response_model=list[InternalRequestRead])
def list_requests(
    status: RequestStatus | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return requests.list_requests(db, status=status)


@router.get("/{request_id}", response_model=InternalRequestRead)
def get_request(request_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return requests.get_request(db, request_id)


@router.post("", response_model=InternalRequestRead, status_code=201)
def create_request(
    payload: RequestCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    with unit_of_work(db):
        req = requests.create_request(
            db,
            destination_property=payload.destination_property,
            lines=[(ln.product_id, ln.quantity) for ln in payload.items],
            actor=actor,
            requester_name=payload.requester_name,
            requester_email=payload.requester_email,
            project_id=payload.project_id,
            notes=payload.notes,
            photo_url=payload.photo_url,
        )
    return InternalRequestRead.model_validate(req)


@router.patch("/{request_id}/status", response_model=InternalRequestRead)
def update_request_status(
    request_id: int,
    payload: RequestStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    with unit_of_work(db):
        req = requests.update_request_status(
            db,
            request_id=request_id,
            status=payload.status,
            actor=actor,
            fulfilled_quantities=payload.fulfilled_quantities,
            fulfilled_date=payload.fulfilled_date,
        )
    return InternalRequestRead.model_validate(req)
