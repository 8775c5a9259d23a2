from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sitestock.app.db.models.core_types import ReturnStatus


class ReturnItemRead(BaseModel):
    id: int
    product_id: int
    quantity: int

    class Config:
        from_attributes = True


class ReturnRead(BaseModel):
    id: int
    return_number: str
    project_id: int
    claim_id: int | None
    requested_by_id: int | None
    requested_by_name: str
    status: ReturnStatus
    reason: str
    notes: str | None
    photo_url: str | None
    rejection_reason: str | None
    processed_by: str | None
    processed_at: datetime | None
    created_at: datetime
    items: list[ReturnItemRead]

    class Config:
        from_attributes = True
