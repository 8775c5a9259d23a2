from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from sitestock.app.core.errors import Conflict, NotFound, ValidationFailure
from sitestock.app.db.models.models_v1 import (
    InventoryItem,
    PurchaseOrder,
    PurchaseOrderItem,
    StockAdjustment,
)
from sitestock.app.db.models.core_types import (
    AdjustmentReason,
    AuditAction,
    DeliveryChannel,
    POStatus,
    StockHealth,
)
from sitestock.app.schemas.auth import Actor
from sitestock.services.audit import record_audit
from sitestock.services.numbering import ADJUSTMENT_PREFIX, next_document_number

logger = logging.getLogger(__name__)


# PO réellement engagés dans le "on order"
ENGAGED_PO_STATUSES = {
    POStatus.ordered,
    POStatus.partial,
}

# Canal de livraison -> compteur on-order de l'article
ON_ORDER_FIELDS = {
    DeliveryChannel.local: "on_order_local_14d",
    DeliveryChannel.shipment_a: "on_order_shipment_a_60d",
    DeliveryChannel.shipment_b: "on_order_shipment_b_60d",
}

CRITICAL_DAYS = 15
REORDER_DAYS = 30


# ---------- CHIFFRES DÉRIVÉS (seul endroit où ils sont calculés) ----------
@dataclass(frozen=True)
class StockMetrics:
    available: int
    on_order_total: int
    projected_stock: int
    daily_consumption: float
    days_left: int | None
    status: StockHealth
    recommended_order: int


def on_order_total(item: InventoryItem) -> int:
    return sum(int(getattr(item, field) or 0) for field in ON_ORDER_FIELDS.values())


def compute_projected_stock(item: InventoryItem) -> int:
    """projected = in_stock - allocated + tout ce qui est en commande."""
    return int(item.in_stock or 0) - int(item.allocated or 0) + on_order_total(item)


def refresh_projected_stock(item: InventoryItem) -> int:
    item.projected_stock = compute_projected_stock(item)
    return item.projected_stock


def stock_metrics(item: InventoryItem) -> StockMetrics:
    """
    Santé du stock d'un article.

    Règles métier :
        daily_consumption = consumed_30d / 30
        days_left         = round(projected / daily_consumption)  (None si conso nulle)
        status            = critical < 15 j, reorder < 30 j, sinon healthy
        recommended_order = max(0, consumed_30d + safety_stock - projected)
    """
    projected = compute_projected_stock(item)
    consumed = int(item.consumed_30d or 0)
    daily = consumed / 30

    if daily > 0:
        days_left: int | None = math.floor(projected / daily + 0.5)
    else:
        days_left = None

    if days_left is None or days_left >= REORDER_DAYS:
        status = StockHealth.healthy
    elif days_left >= CRITICAL_DAYS:
        status = StockHealth.reorder
    else:
        status = StockHealth.critical

    target = consumed + int(item.safety_stock or 0)
    recommended = max(0, target - projected)

    return StockMetrics(
        available=int(item.in_stock or 0) - int(item.allocated or 0),
        on_order_total=on_order_total(item),
        projected_stock=projected,
        daily_consumption=round(daily, 2),
        days_left=days_left,
        status=status,
        recommended_order=recommended,
    )


# ---------- VERROUILLAGE ----------
def lock_items(db: Session, product_ids: Iterable[int]) -> dict[int, InventoryItem]:
    """
    SELECT ... FOR UPDATE sur les articles, dans l'ordre des ids (pas de deadlock).
    Un id inconnu fait échouer toute l'opération.
    """
    ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not ids:
        return {}

    rows = (
        db.execute(
            select(InventoryItem)
            .where(InventoryItem.id.in_(ids))
            .order_by(InventoryItem.id.asc())
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalars()
        .all()
    )
    found = {int(r.id): r for r in rows}

    for pid in ids:
        if pid not in found:
            raise NotFound(f"Inventory item {pid} not found", field=f"product_id:{pid}")
    return found


def get_item(db: Session, product_id: int) -> InventoryItem:
    item = db.get(InventoryItem, product_id)
    if not item:
        raise NotFound("Inventory item not found", field="product_id")
    return item


# ---------- CATALOGUE ----------
def create_item(
    db: Session,
    *,
    product_name: str,
    sku: str,
    in_stock: int = 0,
    allocated: int = 0,
    consumed_30d: int = 0,
    signed_quotations: int = 0,
    safety_stock: int = 25,
    unit_cost: Decimal = Decimal("0.00"),
) -> InventoryItem:
    exists = db.execute(select(InventoryItem).where(InventoryItem.sku == sku)).scalar_one_or_none()
    if exists:
        raise Conflict("SKU already exists", field="sku")
    if in_stock < 0:
        raise ValidationFailure("in_stock must be >= 0", field="in_stock")

    item = InventoryItem(
        product_name=product_name,
        sku=sku,
        in_stock=in_stock,
        allocated=allocated,
        consumed_30d=consumed_30d,
        on_order_local_14d=0,
        on_order_shipment_a_60d=0,
        on_order_shipment_b_60d=0,
        signed_quotations=signed_quotations,
        safety_stock=safety_stock,
        unit_cost=unit_cost,
    )
    refresh_projected_stock(item)
    db.add(item)
    db.flush()
    return item


def list_items(db: Session) -> list[InventoryItem]:
    return list(db.execute(select(InventoryItem).order_by(InventoryItem.product_name)).scalars().all())


# ---------- ON ORDER ----------
def rebuild_on_order(db: Session, *, product_ids: Iterable[int]) -> None:
    """
    Rebuild des compteurs on-order à partir des sources de vérité.

    Règle métier, par canal de livraison :
        on_order = SUM(quantity_ordered - quantity_received) sur PO engagés

    Propriétés :
    - déterministe
    - idempotent
    - même transaction que l'appelant, verrouillage SQL (FOR UPDATE)
    """
    product_ids = sorted({int(pid) for pid in product_ids if pid is not None})
    if not product_ids:
        return

    # les réceptions en cours doivent être visibles par l'agrégat
    db.flush()

    # verrou avant l'agrégat : il doit lire les réceptions déjà committées
    items = lock_items(db, product_ids)

    rows = db.execute(
        select(
            PurchaseOrder.channel,
            PurchaseOrderItem.product_id,
            func.coalesce(
                func.sum(PurchaseOrderItem.quantity_ordered - PurchaseOrderItem.quantity_received),
                0,
            ).label("outstanding"),
        )
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.po_id)
        .where(PurchaseOrder.status.in_(ENGAGED_PO_STATUSES))
        .where(PurchaseOrderItem.product_id.in_(product_ids))
        .group_by(PurchaseOrder.channel, PurchaseOrderItem.product_id)
    ).all()

    outstanding: dict[tuple[int, DeliveryChannel], int] = {}
    for channel, pid, qty in rows:
        outstanding[(int(pid), DeliveryChannel(channel))] = max(int(qty), 0)

    for pid, item in items.items():
        for channel, field in ON_ORDER_FIELDS.items():
            setattr(item, field, outstanding.get((pid, channel), 0))
        refresh_projected_stock(item)


# ---------- AJUSTEMENTS ----------
def create_stock_adjustment(
    db: Session,
    *,
    product_id: int,
    quantity_change: int,
    reason: AdjustmentReason,
    actor: Actor,
    notes: str | None = None,
) -> StockAdjustment:
    """
    Correction manuelle de in_stock, avec snapshot avant/après.

    Le stock ne peut pas devenir négatif : l'ajustement est refusé en entier.
    """
    if quantity_change == 0:
        raise ValidationFailure("quantity_change must not be zero", field="quantity_change")

    item = lock_items(db, [product_id])[int(product_id)]

    previous_stock = int(item.in_stock)
    new_stock = previous_stock + quantity_change
    if new_stock < 0:
        raise ValidationFailure(
            f"Adjustment would make stock negative (in_stock={previous_stock}, change={quantity_change})",
            field="quantity_change",
        )

    item.in_stock = new_stock
    refresh_projected_stock(item)

    number = next_document_number(db, StockAdjustment.adjustment_number, ADJUSTMENT_PREFIX)
    adj = StockAdjustment(
        adjustment_number=number,
        product_id=item.id,
        quantity_change=quantity_change,
        reason=reason,
        notes=notes,
        previous_stock=previous_stock,
        new_stock=new_stock,
        actor_id=actor.user_id,
        actor_name=actor.name,
    )
    db.add(adj)
    db.flush()

    record_audit(
        db,
        actor=actor,
        action=AuditAction.stock_adjustment_created,
        description=f"Stock adjustment {number}: {quantity_change:+d} ({previous_stock} → {new_stock})",
        entity_type="stock_adjustment",
        entity_id=adj.id,
        meta={"sku": item.sku, "reason": reason.value},
    )
    logger.info(
        "Stock adjustment %s on %s: %d -> %d by %s",
        number,
        item.sku,
        previous_stock,
        new_stock,
        actor.name,
    )
    return adj


def list_stock_adjustments(
    db: Session,
    *,
    reason: AdjustmentReason | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[StockAdjustment]:
    stmt = select(StockAdjustment).order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
    if reason is not None:
        stmt = stmt.where(StockAdjustment.reason == reason)
    if start is not None:
        stmt = stmt.where(StockAdjustment.created_at >= start)
    if end is not None:
        stmt = stmt.where(StockAdjustment.created_at <= end)
    return list(db.execute(stmt).scalars().all())
