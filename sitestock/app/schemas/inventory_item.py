from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from sitestock.app.db.models.core_types import StockHealth


class InventoryItemRead(BaseModel):
    id: int
    product_name: str
    sku: str

    in_stock: int
    allocated: int
    consumed_30d: int
    on_order_local_14d: int  # READ ONLY : reconstruit depuis les PO
    on_order_shipment_a_60d: int
    on_order_shipment_b_60d: int
    signed_quotations: int
    safety_stock: int
    projected_stock: int  # READ ONLY : dérivé
    unit_cost: Decimal

    class Config:
        from_attributes = True


class StockMetricsRead(BaseModel):
    available: int
    on_order_total: int
    projected_stock: int
    daily_consumption: float
    days_left: int | None  # None = pas de consommation (infini)
    status: StockHealth
    recommended_order: int


class InventoryItemDetail(InventoryItemRead):
    metrics: StockMetricsRead
