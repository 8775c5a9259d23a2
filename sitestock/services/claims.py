"""
Workflow des claims (retrait de matériaux par une équipe chantier).

    pending -> approved | partial_approved | denied   (terminal)

Approbation, en une seule transaction (verrous FOR UPDATE) :
    1. quantity_approved sur chaque ligne
    2. in_stock -= approved
    3. claimed_quantity += approved (plafonné à required_quantity)
Toute validation est faite AVANT la première écriture : un id inconnu ou une
quantité hors bornes fait échouer l'ensemble, rien n'est appliqué.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Mapping, Sequence

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.models_v1 import Claim, ClaimItem, InventoryItem, Project, utcnow
from sitestock.app.db.models.core_types import (
    AuditAction,
    ClaimStatus,
    ClaimType,
    NotificationType,
    ProjectStatus,
    Role,
)
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit
from sitestock.services.inventory import lock_items, refresh_projected_stock
from sitestock.services.ledger import add_claimed, lock_materials
from sitestock.services.notifications import notify
from sitestock.services.numbering import CLAIM_PREFIX, next_document_number

logger = logging.getLogger(__name__)


def _lock_claim(db: Session, claim_id: int) -> Claim:
    claim = (
        db.execute(
            select(Claim)
            .where(Claim.id == claim_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not claim:
        raise NotFound("Claim not found", field="claim_id")
    return claim


def _require_pending(claim: Claim, action: str) -> None:
    if claim.status != ClaimStatus.pending:
        raise InvalidTransition(
            f"Cannot {action} claim {claim.claim_number}: status is {claim.status.value}",
            field="status",
        )


def get_claim(db: Session, claim_id: int) -> Claim:
    claim = db.get(Claim, claim_id)
    if not claim:
        raise NotFound("Claim not found", field="claim_id")
    return claim


def list_claims(
    db: Session,
    *,
    project_id: int | None = None,
    status: ClaimStatus | None = None,
) -> list[Claim]:
    stmt = select(Claim).order_by(Claim.created_at.desc(), Claim.id.desc())
    if project_id is not None:
        stmt = stmt.where(Claim.project_id == project_id)
    if status is not None:
        stmt = stmt.where(Claim.status == status)
    return list(db.execute(stmt).scalars().all())


def list_pending_claims(db: Session) -> list[Claim]:
    """File d'attente entrepôt : urgences d'abord, puis les plus anciennes."""
    emergency_first = case((Claim.claim_type == ClaimType.emergency, 0), else_=1)
    stmt = (
        select(Claim)
        .where(Claim.status == ClaimStatus.pending)
        .order_by(emergency_first, Claim.created_at.asc(), Claim.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


# ---------- CRÉATION ----------
def create_claim(
    db: Session,
    *,
    project_id: int,
    lines: Sequence[tuple[int, int]],
    actor: Actor,
    claim_type: ClaimType = ClaimType.standard,
    emergency_reason: str | None = None,
    notes: str | None = None,
    photo_url: str | None = None,
) -> Claim:
    """`lines` = [(product_id, quantity), ...]"""
    project = db.get(Project, project_id)
    if not project:
        raise NotFound("Project not found", field="project_id")
    if project.status != ProjectStatus.active:
        raise ValidationFailure(f"Project is {project.status.value}, claims are closed", field="project_id")

    if not lines:
        raise ValidationFailure("A claim needs at least one item", field="items")
    if claim_type == ClaimType.emergency and not (emergency_reason and emergency_reason.strip()):
        raise ValidationFailure("Emergency claims need an emergency reason", field="emergency_reason")

    seen: set[int] = set()
    for idx, (product_id, quantity) in enumerate(lines):
        if product_id in seen:
            raise ValidationFailure(f"Product {product_id} listed twice", field=f"items[{idx}]")
        seen.add(product_id)
        if quantity <= 0:
            raise ValidationFailure("quantity must be > 0", field=f"items[{idx}]")
        if not db.get(InventoryItem, product_id):
            raise NotFound(f"Inventory item {product_id} not found", field=f"items[{idx}]")

    number = next_document_number(db, Claim.claim_number, CLAIM_PREFIX)
    claim = Claim(
        claim_number=number,
        project_id=project_id,
        requested_by_id=actor.user_id,
        requested_by_name=actor.name,
        status=ClaimStatus.pending,
        claim_type=claim_type,
        emergency_reason=emergency_reason,
        notes=notes,
        photo_url=photo_url,
    )
    for product_id, quantity in lines:
        claim.items.append(ClaimItem(product_id=product_id, quantity_requested=quantity, quantity_approved=0))
    db.add(claim)
    db.flush()

    is_emergency = claim_type == ClaimType.emergency
    notify(
        db,
        user_id=actor.user_id,
        message=f"Claim {number} submitted and awaiting review.",
        notification_type=(
            NotificationType.emergency_claim_submitted if is_emergency else NotificationType.claim_submitted
        ),
        claim_id=claim.id,
    )
    if is_emergency:
        notify(
            db,
            role=Role.ceo_admin,
            message=f"Emergency claim {number} requires immediate attention.",
            notification_type=NotificationType.emergency_claim_alert,
            claim_id=claim.id,
        )
    else:
        notify(
            db,
            role=Role.warehouse_admin,
            message=f"New claim {number} submitted by {actor.name}.",
            notification_type=NotificationType.claim_pending_review,
            claim_id=claim.id,
        )

    record_audit(
        db,
        actor=actor,
        action=AuditAction.claim_created,
        description=f"Claim {number} created ({claim_type.value}, {len(lines)} items)",
        entity_type="claim",
        entity_id=claim.id,
    )
    logger.info("Claim %s created by %s for project %s", number, actor.name, project_id)
    return claim


# ---------- APPROBATION ----------
def approve_claim(
    db: Session,
    *,
    claim_id: int,
    approvals: Mapping[int, int],
    actor: Actor,
) -> Claim:
    """
    `approvals` = {claim_item_id: quantité approuvée}.
    Les lignes absentes du mapping sont approuvées à 0.
    """
    approvals = {int(k): int(v) for k, v in approvals.items()}

    claim = _lock_claim(db, claim_id)
    _require_pending(claim, "approve")

    items_by_id = {int(it.id): it for it in claim.items}

    # ---------- VALIDATION (aucune écriture) ----------
    for item_id in approvals:
        if item_id not in items_by_id:
            raise NotFound(
                f"Claim item {item_id} does not belong to claim {claim.claim_number}",
                field=f"items[{item_id}]",
            )

    plan: dict[int, int] = {}
    for item_id, item in items_by_id.items():
        approved = approvals.get(item_id, 0)
        if approved < 0 or approved > item.quantity_requested:
            raise ValidationFailure(
                f"Approved quantity {approved} outside 0..{item.quantity_requested}",
                field=f"items[{item_id}]",
            )
        plan[item_id] = approved

    if not any(plan.values()):
        raise ValidationFailure("Nothing approved: deny the claim instead", field="approvals")

    per_product: dict[int, int] = defaultdict(int)
    for item_id, approved in plan.items():
        if approved > 0:
            per_product[int(items_by_id[item_id].product_id)] += approved

    # verrous : articles puis registre projet (ordre stable)
    stock = lock_items(db, per_product.keys())
    materials = lock_materials(db, project_id=claim.project_id, product_ids=per_product.keys())

    for item_id, approved in plan.items():
        if approved == 0:
            continue
        pid = int(items_by_id[item_id].product_id)
        if per_product[pid] > stock[pid].in_stock:
            raise ValidationFailure(
                f"Insufficient stock for {stock[pid].sku} (in_stock={stock[pid].in_stock})",
                field=f"items[{item_id}]",
            )

    # ---------- APPLICATION ----------
    for item_id, approved in plan.items():
        item = items_by_id[item_id]
        item.quantity_approved = approved
        if approved == 0:
            continue
        pid = int(item.product_id)
        stock[pid].in_stock -= approved
        add_claimed(materials[pid], approved)

    for inv in stock.values():
        refresh_projected_stock(inv)

    fully = all(plan[i] == it.quantity_requested for i, it in items_by_id.items())
    claim.status = ClaimStatus.approved if fully else ClaimStatus.partial_approved
    claim.processed_by = actor.name
    claim.processed_at = utcnow()

    verb = "approved" if fully else "partially approved"
    notify(
        db,
        user_id=claim.requested_by_id,
        role=None if claim.requested_by_id else Role.onsite_team,
        message=f"Claim {claim.claim_number} has been {verb}.",
        notification_type=(
            NotificationType.claim_approved if fully else NotificationType.claim_partially_approved
        ),
        claim_id=claim.id,
    )
    record_audit(
        db,
        actor=actor,
        action=AuditAction.claim_approved if fully else AuditAction.claim_partially_approved,
        description=f"Claim {claim.claim_number} {verb}",
        entity_type="claim",
        entity_id=claim.id,
        meta={"approved": {str(k): v for k, v in plan.items()}},
    )
    db.flush()
    logger.info("Claim %s %s by %s", claim.claim_number, verb, actor.name)
    return claim


# ---------- REFUS ----------
def deny_claim(
    db: Session,
    *,
    claim_id: int,
    reason: str,
    actor: Actor,
    notes: str | None = None,
) -> Claim:
    if not reason or not reason.strip():
        raise ValidationFailure("A denial reason is required", field="reason")

    claim = _lock_claim(db, claim_id)
    _require_pending(claim, "deny")

    claim.status = ClaimStatus.denied
    claim.denial_reason = reason
    if notes is not None:
        claim.notes = notes
    claim.processed_by = actor.name
    claim.processed_at = utcnow()

    notify(
        db,
        user_id=claim.requested_by_id,
        role=None if claim.requested_by_id else Role.onsite_team,
        message=f"Claim {claim.claim_number} has been denied: {reason}",
        notification_type=NotificationType.claim_denied,
        claim_id=claim.id,
    )
    record_audit(
        db,
        actor=actor,
        action=AuditAction.claim_denied,
        description=f"Claim {claim.claim_number} denied: {reason}",
        entity_type="claim",
        entity_id=claim.id,
    )
    db.flush()
    logger.info("Claim %s denied by %s", claim.claim_number, actor.name)
    return claim
