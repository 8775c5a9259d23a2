from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sitestock.app.db.models.core_types import AdjustmentReason


class StockAdjustmentRead(BaseModel):
    id: int
    adjustment_number: str
    product_id: int
    quantity_change: int
    reason: AdjustmentReason
    notes: str | None
    previous_stock: int
    new_stock: int
    actor_name: str
    created_at: datetime

    class Config:
        from_attributes = True
