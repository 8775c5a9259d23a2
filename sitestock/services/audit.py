from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.db.models.core_types import AuditAction
from sitestock.app.db.models.models_v1 import AuditLog
from sitestock.app.schemas.auth import Actor

DEFAULT_LIMIT = 100


def record_audit(
    db: Session,
    *,
    actor: Actor,
    action: AuditAction,
    description: str,
    entity_type: str | None = None,
    entity_id: int | str | None = None,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Ajoute une ligne au journal d'audit (append-only, jamais modifiée)."""
    log = AuditLog(
        actor_name=actor.name,
        actor_role=actor.role.value,
        action_type=action.value,
        description=description,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=meta,
    )
    db.add(log)
    return log


def list_audit_logs(
    db: Session,
    *,
    action_type: str | None = None,
    actor_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = DEFAULT_LIMIT,
) -> list[AuditLog]:
    stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    if action_type and action_type != "all":
        stmt = stmt.where(AuditLog.action_type == action_type)
    if actor_name:
        stmt = stmt.where(AuditLog.actor_name.ilike(f"%{actor_name}%"))
    if start is not None:
        stmt = stmt.where(AuditLog.created_at >= start)
    if end is not None:
        stmt = stmt.where(AuditLog.created_at <= end)

    return list(db.execute(stmt.limit(limit)).scalars().all())
