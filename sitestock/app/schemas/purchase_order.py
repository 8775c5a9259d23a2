from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel

from sitestock.app.db.models.core_types import DeliveryChannel, POStatus


class VendorRead(BaseModel):
    id: int
    name: str
    contact_email: str | None
    contact_phone: str | None
    country: str | None
    lead_time_days: int
    active: bool

    class Config:
        from_attributes = True


class ProductVendorRead(BaseModel):
    id: int
    product_id: int
    vendor_id: int
    is_primary: bool
    vendor_sku: str | None
    unit_price: Decimal
    minimum_order_qty: int
    lead_time_days: int
    last_order_date: datetime | None
    vendor: VendorRead

    class Config:
        from_attributes = True


class PurchaseOrderItemRead(BaseModel):
    id: int
    product_id: int
    quantity_ordered: int
    quantity_received: int
    unit_cost: Decimal

    class Config:
        from_attributes = True


class PurchaseOrderRead(BaseModel):
    id: int
    po_number: str
    vendor_id: int
    status: POStatus
    channel: DeliveryChannel
    order_date: datetime | None
    expected_delivery_date: date | None
    received_at: datetime | None
    notes: str | None
    created_by: str | None
    total_amount: Decimal
    items: list[PurchaseOrderItemRead]

    class Config:
        from_attributes = True
