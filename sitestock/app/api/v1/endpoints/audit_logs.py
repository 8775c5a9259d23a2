from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sitestock.app.api.deps import get_db
from sitestock.app.core.security import require_role
from sitestock.app.db.models.core_types import Role
from sitestock.app.schemas.auth import Actor
from sitestock.app.schemas.journal import AuditLogRead
from sitestock.services import audit

router = APIRouter(prefix="/audit-logs")


@router.get("", response_model=list[AuditLogRead])
def list_audit_logs(
    action_type: str | None = None,
    actor_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(default=audit.DEFAULT_LIMIT, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(Role.ceo_admin, Role.warehouse_admin)),
):
    return audit.list_audit_logs(
        db,
        action_type=action_type,
        actor_name=actor_name,
        start=start,
        end=end,
        limit=limit,
    )
