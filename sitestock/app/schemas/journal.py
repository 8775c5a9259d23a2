from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from sitestock.app.db.models.core_types import Role


class NotificationRead(BaseModel):
    id: int
    recipient_user_id: int | None
    recipient_role: Role | None
    message: str
    notification_type: str
    is_read: bool
    related_claim_id: int | None
    related_return_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogRead(BaseModel):
    id: int
    actor_name: str
    actor_role: str
    action_type: str
    description: str
    entity_type: str | None
    entity_id: str | None
    meta: dict[str, Any] | None
    created_at: datetime

    class Config:
        from_attributes = True
