from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from sitestock.app.db.models.core_types import RequestStatus


class RequestItemRead(BaseModel):
    id: int
    product_id: int
    quantity_requested: int
    quantity_fulfilled: int

    class Config:
        from_attributes = True


class InternalRequestRead(BaseModel):
    id: int
    request_number: str
    requester_name: str
    requester_email: str | None
    destination_property: str
    project_id: int | None
    status: RequestStatus
    notes: str | None
    photo_url: str | None
    created_by_role: str
    fulfilled_date: datetime | None
    processed_by: str | None
    created_at: datetime
    items: list[RequestItemRead]

    class Config:
        from_attributes = True
