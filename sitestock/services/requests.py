"""
Demandes internes de matériel (livraison vers une propriété).

    pending -> fulfilled | cancelled   (terminal)

Document de suivi : une demande ne modifie ni in_stock ni le registre projet.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from sitestock.app.core.errors import InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.core_types import AuditAction, RequestStatus
from sitestock.app.db.models.models_v1 import InternalRequest, InventoryItem, Project, RequestItem, utcnow
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit
from sitestock.services.numbering import REQUEST_PREFIX, next_document_number

logger = logging.getLogger(__name__)

CLOSING_STATUSES = {RequestStatus.fulfilled, RequestStatus.cancelled}


def get_request(db: Session, request_id: int) -> InternalRequest:
    req = db.get(InternalRequest, request_id)
    if not req:
        raise NotFound("Request not found", field="request_id")
    return req


def list_requests(db: Session, *, status: RequestStatus | None = None) -> list[InternalRequest]:
    stmt = select(InternalRequest).order_by(InternalRequest.created_at.desc(), InternalRequest.id.desc())
    if status is not None:
        stmt = stmt.where(InternalRequest.status == status)
    return list(db.execute(stmt).scalars().all())


def create_request(
    db: Session,
    *,
    destination_property: str,
    lines: Sequence[tuple[int, int]],
    actor: Actor,
    requester_name: str | None = None,
    requester_email: str | None = None,
    project_id: int | None = None,
    notes: str | None = None,
    photo_url: str | None = None,
) -> InternalRequest:
    """`lines` = [(product_id, quantity_requested), ...]"""
    if not destination_property or not destination_property.strip():
        raise ValidationFailure("A destination property is required", field="destination_property")
    if not lines:
        raise ValidationFailure("A request needs at least one item", field="items")
    if project_id is not None and not db.get(Project, project_id):
        raise NotFound("Project not found", field="project_id")

    seen: set[int] = set()
    for idx, (product_id, quantity) in enumerate(lines):
        if product_id in seen:
            raise ValidationFailure(f"Product {product_id} listed twice", field=f"items[{idx}]")
        seen.add(product_id)
        if quantity <= 0:
            raise ValidationFailure("quantity must be > 0", field=f"items[{idx}]")
        if not db.get(InventoryItem, product_id):
            raise NotFound(f"Inventory item {product_id} not found", field=f"items[{idx}]")

    number = next_document_number(db, InternalRequest.request_number, REQUEST_PREFIX)
    req = InternalRequest(
        request_number=number,
        requester_name=requester_name or actor.name,
        requester_email=requester_email,
        destination_property=destination_property.strip(),
        project_id=project_id,
        status=RequestStatus.pending,
        notes=notes,
        photo_url=photo_url,
        created_by_role=actor.role.value,
    )
    for product_id, quantity in lines:
        req.items.append(RequestItem(product_id=product_id, quantity_requested=quantity, quantity_fulfilled=0))
    db.add(req)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.request_created,
        description=f"Request {number} created for {req.destination_property} ({len(lines)} items)",
        entity_type="internal_request",
        entity_id=req.id,
    )
    logger.info("Request %s created by %s", number, actor.name)
    return req


def update_request_status(
    db: Session,
    *,
    request_id: int,
    status: RequestStatus,
    actor: Actor,
    fulfilled_quantities: Mapping[int, int] | None = None,
    fulfilled_date: datetime | None = None,
) -> InternalRequest:
    """
    Clôture une demande en attente.

    `fulfilled_quantities` = {request_item_id: quantité livrée} ; une ligne
    absente est considérée livrée en entier.
    """
    if status not in CLOSING_STATUSES:
        raise ValidationFailure(f"Cannot move a request to {status.value}", field="status")

    req = (
        db.execute(
            select(InternalRequest)
            .where(InternalRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not req:
        raise NotFound("Request not found", field="request_id")
    if req.status != RequestStatus.pending:
        raise InvalidTransition(
            f"Cannot close request {req.request_number}: status is {req.status.value}",
            field="status",
        )

    if status == RequestStatus.cancelled:
        if fulfilled_quantities:
            raise ValidationFailure("A cancelled request delivers nothing", field="fulfilled_quantities")
        action = AuditAction.request_cancelled
    else:
        quantities = {int(k): int(v) for k, v in (fulfilled_quantities or {}).items()}
        items_by_id = {int(it.id): it for it in req.items}
        for item_id in quantities:
            if item_id not in items_by_id:
                raise NotFound(
                    f"Request item {item_id} does not belong to request {req.request_number}",
                    field=f"items[{item_id}]",
                )
        plan = {}
        for item_id, item in items_by_id.items():
            qty = quantities.get(item_id, item.quantity_requested)
            if qty < 0 or qty > item.quantity_requested:
                raise ValidationFailure(
                    f"Fulfilled quantity {qty} outside 0..{item.quantity_requested}",
                    field=f"items[{item_id}]",
                )
            plan[item_id] = qty

        for item_id, qty in plan.items():
            items_by_id[item_id].quantity_fulfilled = qty
        req.fulfilled_date = fulfilled_date or utcnow()
        action = AuditAction.request_fulfilled

    req.status = status
    req.processed_by = actor.name

    record_audit(
        db,
        actor=actor,
        action=action,
        description=f"Request {req.request_number} {status.value}",
        entity_type="internal_request",
        entity_id=req.id,
    )
    db.flush()
    logger.info("Request %s %s by %s", req.request_number, status.value, actor.name)
    return req
