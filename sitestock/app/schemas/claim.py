from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sitestock.app.db.models.core_types import ClaimStatus, ClaimType


class ClaimItemRead(BaseModel):
    id: int
    product_id: int
    quantity_requested: int
    quantity_approved: int

    class Config:
        from_attributes = True


class ClaimRead(BaseModel):
    id: int
    claim_number: str
    project_id: int
    requested_by_id: int | None
    requested_by_name: str
    status: ClaimStatus
    claim_type: ClaimType
    emergency_reason: str | None
    notes: str | None
    photo_url: str | None
    denial_reason: str | None
    processed_by: str | None
    processed_at: datetime | None
    created_at: datetime
    items: list[ClaimItemRead]

    class Config:
        from_attributes = True
