from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.inventory_item import InventoryItemDetail, InventoryItemRead, StockMetricsRead
from sitestock.app.schemas.purchase_order import ProductVendorRead
from sitestock.services import inventory as inventory_service
from sitestock.services import procurement

router = APIRouter(prefix="/inventory")


class InventoryItemCreate(BaseModel):
    product_name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=64)
    in_stock: int = Field(default=0, ge=0)
    allocated: int = Field(default=0, ge=0)
    consumed_30d: int = Field(default=0, ge=0)
    signed_quotations: int = Field(default=0, ge=0)
    safety_stock: int = Field(default=25, ge=0)
    unit_cost: Decimal = Field(default=Decimal("0.00"), ge=0)


class ProductVendorLink(BaseModel):
    vendor_id: int
    is_primary: bool = False
    vendor_sku: str | None = Field(default=None, max_length=64)
    unit_price: Decimal = Field(default=Decimal("0.00"), ge=0)
    minimum_order_qty: int = Field(default=1, gt=0)
    lead_time_days: int | None = Field(default=None, ge=0)


def _detail(item) -> InventoryItemDetail:
    base = InventoryItemRead.model_validate(item)
    metrics = StockMetricsRead(**asdict(inventory_service.stock_metrics(item)))
    return InventoryItemDetail(**base.model_dump(), metrics=metrics)


@router.get("", response_model=list[InventoryItemDetail])
def list_items(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return [_detail(it) for it in inventory_service.list_items(db)]


@router.get("/{product_id}", response_model=InventoryItemDetail)
def get_item(product_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return _detail(inventory_service.get_item(db, product_id))


@router.post("", response_model=InventoryItemDetail, status_code=201)
def create_item(
    payload: InventoryItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    with unit_of_work(db):
        item = inventory_service.create_item(db, **payload.model_dump())
    return _detail(item)


@router.get("/{product_id}/vendors", response_model=list[ProductVendorRead])
def list_item_vendors(product_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return procurement.list_product_vendors(db, product_id)


@router.post("/{product_id}/vendors", response_model=ProductVendorRead, status_code=201)
def link_item_vendor(
    product_id: int,
    payload: ProductVendorLink,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    with unit_of_work(db):
        link = procurement.link_product_vendor(db, product_id=product_id, actor=actor, **payload.model_dump())
    return ProductVendorRead.model_validate(link)
