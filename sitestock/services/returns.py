"""
Workflow des retours chantier.

    pending -> approved | rejected   (terminal)

Un retour approuvé diminue claimed_quantity (plancher 0) mais ne remet
JAMAIS en stock : le matériel retourné est considéré endommagé.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.models_v1 import Claim, InventoryItem, Project, Return, ReturnItem, utcnow
from sitestock.app.db.models.core_types import (
    AuditAction,
    NotificationType,
    ReturnStatus,
    Role,
)
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit
from sitestock.services.ledger import lock_materials, release_claimed
from sitestock.services.notifications import notify
from sitestock.services.numbering import RETURN_PREFIX, next_document_number

logger = logging.getLogger(__name__)


def _lock_return(db: Session, return_id: int) -> Return:
    ret = (
        db.execute(
            select(Return)
            .where(Return.id == return_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not ret:
        raise NotFound("Return not found", field="return_id")
    return ret


def _require_pending(ret: Return, action: str) -> None:
    if ret.status != ReturnStatus.pending:
        raise InvalidTransition(
            f"Cannot {action} return {ret.return_number}: status is {ret.status.value}",
            field="status",
        )


def get_return(db: Session, return_id: int) -> Return:
    ret = db.get(Return, return_id)
    if not ret:
        raise NotFound("Return not found", field="return_id")
    return ret


def list_returns(db: Session, *, status: ReturnStatus | None = None) -> list[Return]:
    stmt = select(Return).order_by(Return.created_at.desc(), Return.id.desc())
    if status is not None:
        stmt = stmt.where(Return.status == status)
    return list(db.execute(stmt).scalars().all())


def list_pending_returns(db: Session) -> list[Return]:
    stmt = (
        select(Return)
        .where(Return.status == ReturnStatus.pending)
        .order_by(Return.created_at.asc(), Return.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def create_return(
    db: Session,
    *,
    project_id: int,
    lines: Sequence[tuple[int, int]],
    reason: str,
    actor: Actor,
    claim_id: int | None = None,
    notes: str | None = None,
    photo_url: str | None = None,
) -> Return:
    """`lines` = [(product_id, quantity), ...]"""
    if not db.get(Project, project_id):
        raise NotFound("Project not found", field="project_id")
    if not reason or not reason.strip():
        raise ValidationFailure("A return reason is required", field="reason")
    if not lines:
        raise ValidationFailure("A return needs at least one item", field="items")

    if claim_id is not None:
        claim = db.get(Claim, claim_id)
        if not claim:
            raise NotFound("Claim not found", field="claim_id")
        if claim.project_id != project_id:
            raise ValidationFailure("Claim belongs to another project", field="claim_id")

    for idx, (product_id, quantity) in enumerate(lines):
        if quantity <= 0:
            raise ValidationFailure("quantity must be > 0", field=f"items[{idx}]")
        if not db.get(InventoryItem, product_id):
            raise NotFound(f"Inventory item {product_id} not found", field=f"items[{idx}]")

    number = next_document_number(db, Return.return_number, RETURN_PREFIX)
    ret = Return(
        return_number=number,
        project_id=project_id,
        claim_id=claim_id,
        requested_by_id=actor.user_id,
        requested_by_name=actor.name,
        status=ReturnStatus.pending,
        reason=reason,
        notes=notes,
        photo_url=photo_url,
    )
    for product_id, quantity in lines:
        ret.items.append(ReturnItem(product_id=product_id, quantity=quantity))
    db.add(ret)
    db.flush()

    notify(
        db,
        role=Role.warehouse_admin,
        message=f"Return {number} submitted by {actor.name}.",
        notification_type=NotificationType.return_pending_review,
        return_id=ret.id,
    )
    record_audit(
        db,
        actor=actor,
        action=AuditAction.return_created,
        description=f"Return {number} created: {reason}",
        entity_type="return",
        entity_id=ret.id,
    )
    logger.info("Return %s created by %s for project %s", number, actor.name, project_id)
    return ret


def approve_return(db: Session, *, return_id: int, actor: Actor) -> Return:
    ret = _lock_return(db, return_id)
    _require_pending(ret, "approve")

    per_product: dict[int, int] = defaultdict(int)
    for it in ret.items:
        per_product[int(it.product_id)] += int(it.quantity)

    # NotFound si une ligne du registre manque : rien n'est appliqué
    materials = lock_materials(db, project_id=ret.project_id, product_ids=per_product.keys())

    released: dict[str, int] = {}
    for pid, qty in per_product.items():
        before = materials[pid].claimed_quantity
        after = release_claimed(materials[pid], qty)
        released[str(pid)] = before - after

    # pas de in_stock += : matériel endommagé
    ret.status = ReturnStatus.approved
    ret.processed_by = actor.name
    ret.processed_at = utcnow()

    notify(
        db,
        user_id=ret.requested_by_id,
        role=None if ret.requested_by_id else Role.onsite_team,
        message=f"Return {ret.return_number} has been approved.",
        notification_type=NotificationType.return_approved,
        return_id=ret.id,
    )
    record_audit(
        db,
        actor=actor,
        action=AuditAction.return_approved,
        description=f"Return {ret.return_number} approved",
        entity_type="return",
        entity_id=ret.id,
        meta={"released": released},
    )
    db.flush()
    logger.info("Return %s approved by %s", ret.return_number, actor.name)
    return ret


def reject_return(
    db: Session,
    *,
    return_id: int,
    reason: str,
    actor: Actor,
    notes: str | None = None,
) -> Return:
    if not reason or not reason.strip():
        raise ValidationFailure("A rejection reason is required", field="reason")

    ret = _lock_return(db, return_id)
    _require_pending(ret, "reject")

    ret.status = ReturnStatus.rejected
    ret.rejection_reason = reason
    if notes is not None:
        ret.notes = notes
    ret.processed_by = actor.name
    ret.processed_at = utcnow()

    notify(
        db,
        user_id=ret.requested_by_id,
        role=None if ret.requested_by_id else Role.onsite_team,
        message=f"Return {ret.return_number} has been rejected: {reason}",
        notification_type=NotificationType.return_rejected,
        return_id=ret.id,
    )
    record_audit(
        db,
        actor=actor,
        action=AuditAction.return_rejected,
        description=f"Return {ret.return_number} rejected: {reason}",
        entity_type="return",
        entity_id=ret.id,
    )
    db.flush()
    logger.info("Return %s rejected by %s", ret.return_number, actor.name)
    return ret
