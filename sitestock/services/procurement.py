"""
Procurement service.

Ce module orchestre les flux d'achat (fournisseurs, PO, réception)
mais ne contient AUCUNE logique de calcul de stock.

Toute la logique stock est centralisée dans :
    sitestock.services.inventory

    draft -> ordered -> partial -> received
    draft | ordered  -> cancelled
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Mapping, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from sitestock.app.core.errors import Conflict, InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.core_types import AuditAction, DeliveryChannel, POStatus
from sitestock.app.db.models.models_v1 import (
    InventoryItem,
    ProductVendor,
    PurchaseOrder,
    PurchaseOrderItem,
    Vendor,
    utcnow,
)
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit
from sitestock.services.inventory import lock_items, rebuild_on_order, refresh_projected_stock
from sitestock.services.numbering import PO_PREFIX, next_document_number

logger = logging.getLogger(__name__)


# ---------- FOURNISSEURS ----------
def create_vendor(
    db: Session,
    *,
    name: str,
    contact_email: str | None = None,
    contact_phone: str | None = None,
    country: str | None = None,
    lead_time_days: int = 14,
) -> Vendor:
    exists = db.execute(select(Vendor).where(Vendor.name == name)).scalar_one_or_none()
    if exists:
        raise Conflict("Vendor already exists", field="name")

    v = Vendor(
        name=name,
        contact_email=contact_email,
        contact_phone=contact_phone,
        country=country,
        lead_time_days=lead_time_days,
    )
    db.add(v)
    db.flush()
    return v


def list_vendors(db: Session) -> list[Vendor]:
    return list(db.execute(select(Vendor).order_by(Vendor.name)).scalars().all())


# ---------- ARTICLES <-> FOURNISSEURS ----------
def link_product_vendor(
    db: Session,
    *,
    product_id: int,
    vendor_id: int,
    actor: Actor,
    is_primary: bool = False,
    vendor_sku: str | None = None,
    unit_price: Decimal = Decimal("0.00"),
    minimum_order_qty: int = 1,
    lead_time_days: int | None = None,
) -> ProductVendor:
    """
    Référence un fournisseur pour un article.
    Un nouveau fournisseur principal retire le statut aux autres liens de l'article.
    """
    if not db.get(InventoryItem, product_id):
        raise NotFound("Inventory item not found", field="product_id")
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise NotFound("Vendor not found", field="vendor_id")
    if unit_price < 0:
        raise ValidationFailure("unit_price must be >= 0", field="unit_price")
    if minimum_order_qty <= 0:
        raise ValidationFailure("minimum_order_qty must be > 0", field="minimum_order_qty")

    exists = db.execute(
        select(ProductVendor)
        .where(ProductVendor.product_id == product_id)
        .where(ProductVendor.vendor_id == vendor_id)
    ).scalar_one_or_none()
    if exists:
        raise Conflict("Vendor already linked to this product", field="vendor_id")

    if is_primary:
        db.execute(
            update(ProductVendor)
            .where(ProductVendor.product_id == product_id)
            .where(ProductVendor.is_primary.is_(True))
            .values(is_primary=False)
            .execution_options(synchronize_session="fetch")
        )

    link = ProductVendor(
        product_id=product_id,
        vendor_id=vendor_id,
        is_primary=is_primary,
        vendor_sku=vendor_sku,
        unit_price=unit_price,
        minimum_order_qty=minimum_order_qty,
        lead_time_days=vendor.lead_time_days if lead_time_days is None else lead_time_days,
    )
    db.add(link)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.vendor_linked,
        description=f"Vendor {vendor.name} linked to product {product_id}" + (" (primary)" if is_primary else ""),
        entity_type="inventory_item",
        entity_id=product_id,
    )
    return link


def list_product_vendors(db: Session, product_id: int) -> list[ProductVendor]:
    """Fournisseurs d'un article, le principal d'abord."""
    if not db.get(InventoryItem, product_id):
        raise NotFound("Inventory item not found", field="product_id")
    stmt = (
        select(ProductVendor)
        .join(Vendor, Vendor.id == ProductVendor.vendor_id)
        .where(ProductVendor.product_id == product_id)
        .order_by(ProductVendor.is_primary.desc(), Vendor.name)
    )
    return list(db.execute(stmt).scalars().all())


def list_vendor_products(db: Session, vendor_id: int) -> list[ProductVendor]:
    if not db.get(Vendor, vendor_id):
        raise NotFound("Vendor not found", field="vendor_id")
    stmt = (
        select(ProductVendor)
        .join(InventoryItem, InventoryItem.id == ProductVendor.product_id)
        .where(ProductVendor.vendor_id == vendor_id)
        .order_by(InventoryItem.product_name)
    )
    return list(db.execute(stmt).scalars().all())


# ---------- LECTURE ----------
def _lock_po(db: Session, po_id: int) -> PurchaseOrder:
    po = (
        db.execute(
            select(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .first()
    )
    if not po:
        raise NotFound("PO not found", field="po_id")
    return po


def _require_status(po: PurchaseOrder, allowed: set[POStatus], action: str) -> None:
    if po.status not in allowed:
        raise InvalidTransition(
            f"Cannot {action} PO {po.po_number}: status is {po.status.value}",
            field="status",
        )


def _product_ids(po: PurchaseOrder) -> list[int]:
    return [int(it.product_id) for it in po.items]


def get_po(db: Session, po_id: int) -> PurchaseOrder:
    po = db.get(PurchaseOrder, po_id)
    if not po:
        raise NotFound("PO not found", field="po_id")
    return po


def list_pos(db: Session, *, status: POStatus | None = None) -> list[PurchaseOrder]:
    stmt = select(PurchaseOrder).order_by(PurchaseOrder.id.desc())
    if status is not None:
        stmt = stmt.where(PurchaseOrder.status == status)
    return list(db.execute(stmt).scalars().all())


# ---------- CRÉATION ----------
def create_po(
    db: Session,
    *,
    vendor_id: int,
    lines: Sequence[tuple[int, int, Decimal]],
    actor: Actor,
    channel: DeliveryChannel = DeliveryChannel.local,
    expected_delivery_date: date | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    """`lines` = [(product_id, quantity_ordered, unit_cost), ...]"""
    # FK checks (fail fast, message clair)
    if not db.get(Vendor, vendor_id):
        raise NotFound("Vendor not found", field="vendor_id")
    if not lines:
        raise ValidationFailure("A purchase order needs at least one line", field="items")

    for idx, (product_id, quantity, unit_cost) in enumerate(lines):
        if quantity <= 0:
            raise ValidationFailure("quantity_ordered must be > 0", field=f"items[{idx}]")
        if Decimal(unit_cost) < 0:
            raise ValidationFailure("unit_cost must be >= 0", field=f"items[{idx}]")
        if not db.get(InventoryItem, product_id):
            raise NotFound(f"Inventory item {product_id} not found", field=f"items[{idx}]")

    number = next_document_number(db, PurchaseOrder.po_number, PO_PREFIX)
    po = PurchaseOrder(
        po_number=number,
        vendor_id=vendor_id,
        status=POStatus.draft,
        channel=channel,
        expected_delivery_date=expected_delivery_date,
        notes=notes,
        created_by=actor.name,
    )
    for product_id, quantity, unit_cost in lines:
        po.items.append(
            PurchaseOrderItem(
                product_id=product_id,
                quantity_ordered=quantity,
                quantity_received=0,
                unit_cost=Decimal(unit_cost),
            )
        )
    db.add(po)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.po_created,
        description=f"PO {number} created ({len(lines)} lines, {channel.value})",
        entity_type="purchase_order",
        entity_id=po.id,
    )
    logger.info("PO %s created by %s", number, actor.name)
    return po


# ---------- TRANSITIONS ----------
def send_po(db: Session, *, po_id: int, actor: Actor) -> PurchaseOrder:
    po = _lock_po(db, po_id)
    _require_status(po, {POStatus.draft}, "send")

    po.status = POStatus.ordered
    po.order_date = utcnow()

    # dernière commande connue pour les liens article-fournisseur existants
    db.execute(
        update(ProductVendor)
        .where(ProductVendor.vendor_id == po.vendor_id)
        .where(ProductVendor.product_id.in_(_product_ids(po)))
        .values(last_order_date=po.order_date)
        .execution_options(synchronize_session="fetch")
    )

    # le PO alimente désormais le on-order de son canal
    rebuild_on_order(db, product_ids=_product_ids(po))

    record_audit(
        db,
        actor=actor,
        action=AuditAction.po_ordered,
        description=f"PO {po.po_number} sent to vendor",
        entity_type="purchase_order",
        entity_id=po.id,
    )
    logger.info("PO %s ordered by %s", po.po_number, actor.name)
    return po


def receive_po(
    db: Session,
    *,
    po_id: int,
    receipts: Mapping[int, int],
    actor: Actor,
) -> PurchaseOrder:
    """
    `receipts` = {po_item_id: quantité reçue maintenant}.

    Une réception ne dépasse jamais la quantité commandée ; toute ligne
    invalide fait échouer la réception entière.
    """
    receipts = {int(k): int(v) for k, v in receipts.items()}
    if not receipts:
        raise ValidationFailure("Nothing to receive", field="receipts")

    po = _lock_po(db, po_id)
    _require_status(po, {POStatus.ordered, POStatus.partial}, "receive")

    items_by_id = {int(it.id): it for it in po.items}

    # ---------- VALIDATION (aucune écriture) ----------
    for item_id, qty in receipts.items():
        item = items_by_id.get(item_id)
        if item is None:
            raise NotFound(
                f"PO item {item_id} does not belong to PO {po.po_number}",
                field=f"items[{item_id}]",
            )
        if qty <= 0:
            raise ValidationFailure("received quantity must be > 0", field=f"items[{item_id}]")
        remaining = item.quantity_ordered - item.quantity_received
        if qty > remaining:
            raise ValidationFailure(
                f"Receiving {qty} exceeds outstanding quantity {remaining}",
                field=f"items[{item_id}]",
            )

    stock = lock_items(db, (items_by_id[i].product_id for i in receipts))

    # ---------- APPLICATION ----------
    for item_id, qty in receipts.items():
        item = items_by_id[item_id]
        item.quantity_received += qty
        stock[int(item.product_id)].in_stock += qty

    for inv in stock.values():
        refresh_projected_stock(inv)

    fully = all(it.quantity_received == it.quantity_ordered for it in po.items)
    if fully:
        po.status = POStatus.received
        po.received_at = utcnow()
    else:
        po.status = POStatus.partial

    # rebuild on-order dans la même transaction
    rebuild_on_order(db, product_ids=_product_ids(po))

    record_audit(
        db,
        actor=actor,
        action=AuditAction.po_received if fully else AuditAction.po_partially_received,
        description=f"PO {po.po_number} {'received' if fully else 'partially received'}",
        entity_type="purchase_order",
        entity_id=po.id,
        meta={"received": {str(k): v for k, v in receipts.items()}},
    )
    logger.info("PO %s receipt by %s -> %s", po.po_number, actor.name, po.status.value)
    return po


def cancel_po(db: Session, *, po_id: int, actor: Actor) -> PurchaseOrder:
    po = _lock_po(db, po_id)
    _require_status(po, {POStatus.draft, POStatus.ordered}, "cancel")
    if any(it.quantity_received > 0 for it in po.items):
        raise InvalidTransition(f"PO {po.po_number} already has receipts", field="status")

    po.status = POStatus.cancelled
    rebuild_on_order(db, product_ids=_product_ids(po))

    record_audit(
        db,
        actor=actor,
        action=AuditAction.po_cancelled,
        description=f"PO {po.po_number} cancelled",
        entity_type="purchase_order",
        entity_id=po.id,
    )
    logger.info("PO %s cancelled by %s", po.po_number, actor.name)
    return po
