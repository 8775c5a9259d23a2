from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import DeliveryChannel, POStatus, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.purchase_order import PurchaseOrderRead
from sitestock.services import procurement, reports

router = APIRouter(prefix="/purchase-orders")

BUYERS = (Role.ceo_admin, Role.warehouse_admin)


# ---------- Schemas ----------
class POLineCreate(BaseModel):
    product_id: int
    quantity_ordered: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)


class POCreate(BaseModel):
    vendor_id: int
    channel: DeliveryChannel = DeliveryChannel.local
    expected_delivery_date: date | None = None
    notes: str | None = None
    items: list[POLineCreate] = Field(default_factory=list)


class POReceive(BaseModel):
    # {po_item_id: quantité reçue maintenant}
    receipts: dict[int, int] = Field(default_factory=dict)


# ---------- Endpoints ----------
@router.get("", response_model=list[PurchaseOrderRead])
def list_pos(
    status: POStatus | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return procurement.list_pos(db, status=status)


@router.get("/{po_id}", response_model=PurchaseOrderRead)
def get_po(po_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return procurement.get_po(db, po_id)


@router.post("", response_model=PurchaseOrderRead, status_code=201)
def create_po(
    payload: POCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*BUYERS)),
):
    with unit_of_work(db):
        po = procurement.create_po(
            db,
            vendor_id=payload.vendor_id,
            lines=[(ln.product_id, ln.quantity_ordered, ln.unit_cost) for ln in payload.items],
            actor=actor,
            channel=payload.channel,
            expected_delivery_date=payload.expected_delivery_date,
            notes=payload.notes,
        )
    return PurchaseOrderRead.model_validate(po)


@router.post("/{po_id}/send", response_model=PurchaseOrderRead)
def send_po(po_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_role(*BUYERS))):
    with unit_of_work(db):
        po = procurement.send_po(db, po_id=po_id, actor=actor)
    return PurchaseOrderRead.model_validate(po)


@router.post("/{po_id}/receive", response_model=PurchaseOrderRead)
def receive_po(
    po_id: int,
    payload: POReceive,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(*BUYERS)),
):
    with unit_of_work(db):
        po = procurement.receive_po(db, po_id=po_id, receipts=payload.receipts, actor=actor)
    return PurchaseOrderRead.model_validate(po)


@router.post("/{po_id}/cancel", response_model=PurchaseOrderRead)
def cancel_po(po_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_role(*BUYERS))):
    with unit_of_work(db):
        po = procurement.cancel_po(db, po_id=po_id, actor=actor)
    return PurchaseOrderRead.model_validate(po)


@router.get("/{po_id}/document")
def po_document(po_id: int, db: Session = Depends(get_db), actor: Actor = Depends(require_role(*BUYERS))):
    po = procurement.get_po(db, po_id)
    return Response(
        content=reports.purchase_order_pdf(po),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{po.po_number}.pdf"'},
    )
