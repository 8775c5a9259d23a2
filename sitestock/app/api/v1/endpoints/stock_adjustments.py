from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import AdjustmentReason, Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.stock_adjustment import StockAdjustmentRead
from sitestock.services import inventory as inventory_service

router = APIRouter(prefix="/stock-adjustments")


class AdjustmentCreate(BaseModel):
    product_id: int
    quantity_change: int  # signé, != 0
    reason: AdjustmentReason
    notes: str | None = None


@router.get("", response_model=list[StockAdjustmentRead])
def list_adjustments(
    reason: AdjustmentReason | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    return inventory_service.list_stock_adjustments(db, reason=reason, start=start, end=end)


@router.post("", response_model=StockAdjustmentRead, status_code=201)
def create_adjustment(
    payload: AdjustmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    with unit_of_work(db):
        adj = inventory_service.create_stock_adjustment(
            db,
            product_id=payload.product_id,
            quantity_change=payload.quantity_change,
            reason=payload.reason,
            actor=actor,
            notes=payload.notes,
        )
    return StockAdjustmentRead.model_validate(adj)
