from __future__ import annotations

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from sitestock.app.core.errors import NotFound, ValidationFailure
from sitestock.app.db.models.core_types import NotificationType, Role
from sitestock.app.db.models.models_v1 import Notification
from sitestock.app.schemas.auth import Actor

DEFAULT_LIMIT = 50


def notify(
    db: Session,
    *,
    message: str,
    notification_type: NotificationType,
    user_id: int | None = None,
    role: Role | None = None,
    claim_id: int | None = None,
    return_id: int | None = None,
) -> Notification:
    if user_id is None and role is None:
        raise ValidationFailure("Notification needs a recipient user or role", field="recipient")

    n = Notification(
        recipient_user_id=user_id,
        recipient_role=role,
        message=message,
        notification_type=notification_type.value,
        is_read=False,
        related_claim_id=claim_id,
        related_return_id=return_id,
    )
    db.add(n)
    return n


def _addressed_to(actor: Actor):
    return or_(
        Notification.recipient_user_id == actor.user_id,
        Notification.recipient_role == actor.role,
    )


def list_notifications(db: Session, actor: Actor, *, limit: int = DEFAULT_LIMIT) -> list[Notification]:
    stmt = (
        select(Notification)
        .where(_addressed_to(actor))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def unread_count(db: Session, actor: Actor) -> int:
    stmt = (
        select(func.count())
        .select_from(Notification)
        .where(_addressed_to(actor))
        .where(Notification.is_read.is_(False))
    )
    return int(db.execute(stmt).scalar_one())


def mark_read(db: Session, notification_id: int, actor: Actor) -> Notification:
    n = db.execute(
        select(Notification)
        .where(Notification.id == notification_id)
        .where(_addressed_to(actor))
    ).scalar_one_or_none()
    # Une notification adressée à quelqu'un d'autre est traitée comme absente
    if not n:
        raise NotFound("Notification not found", field="notification_id")

    n.is_read = True
    return n


def mark_all_read(db: Session, actor: Actor) -> int:
    result = db.execute(
        update(Notification)
        .where(_addressed_to(actor))
        .where(Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    return int(result.rowcount or 0)
