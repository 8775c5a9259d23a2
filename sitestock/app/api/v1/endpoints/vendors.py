from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import get_current_user, require_role
from sitestock.app.db.models.core_types import Role
from sitestock.app.db.session import unit_of_work
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.purchase_order import ProductVendorRead, VendorRead
from sitestock.services import procurement

router = APIRouter(prefix="/vendors")


class VendorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255)
    contact_phone: str | None = Field(default=None, max_length=64)
    country: str | None = Field(default=None, max_length=100)
    lead_time_days: int = Field(default=14, ge=0)


@router.get("", response_model=list[VendorRead])
def list_vendors(db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return procurement.list_vendors(db)


@router.post("", response_model=VendorRead, status_code=201)
def create_vendor(
    payload: VendorCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    with unit_of_work(db):
        v = procurement.create_vendor(db, **payload.model_dump())
    return VendorRead.model_validate(v)


@router.get("/{vendor_id}/products", response_model=list[ProductVendorRead])
def list_vendor_products(vendor_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_current_user)):
    return procurement.list_vendor_products(db, vendor_id)
