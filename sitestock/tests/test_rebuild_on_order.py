from decimal import Decimal

from sqlalchemy import event

from sitestock.app.db.models.core_types import DeliveryChannel, POStatus
from sitestock.app.db.models.models_v1 import PurchaseOrder, PurchaseOrderItem
from sitestock.services.inventory import rebuild_on_order


def _raw_po(db_session, vendor, *, number, status, channel, item, ordered, received=0):
    po = PurchaseOrder(po_number=number, vendor_id=vendor.id, status=status, channel=channel)
    po.items.append(
        PurchaseOrderItem(
            product_id=item.id,
            quantity_ordered=ordered,
            quantity_received=received,
            unit_cost=Decimal("100"),
        )
    )
    db_session.add(po)
    return po


def test_rebuild_on_order_before_po_closed(db_session, make_item, vendor):
    """
    GIVEN
    - un PO partial de 10 unités
    - 5 unités déjà reçues
    - rebuild effectué AVANT fermeture du PO

    THEN
    - on_order_local == 5
    """
    item = make_item(in_stock=5)
    _raw_po(
        db_session,
        vendor,
        number="TEST-PO-1",
        status=POStatus.partial,
        channel=DeliveryChannel.local,
        item=item,
        ordered=10,
        received=5,
    )
    db_session.commit()

    # ---------- ACT ----------
    rebuild_on_order(db_session, product_ids=[item.id])
    db_session.commit()

    # ---------- ASSERT ----------
    db_session.refresh(item)
    assert item.on_order_local_14d == 5
    assert item.projected_stock == 10


def test_rebuild_ignores_draft_received_and_cancelled(db_session, make_item, vendor):
    """
    GIVEN
    - un PO par statut, chacun de 10 unités sur le même article
    - ordered (shipment_b) et partial (shipment_a, 4 reçues) sont engagés

    THEN
    - seuls les PO engagés comptent, chacun sur son canal
    - le rebuild est idempotent
    """
    item = make_item(in_stock=0)
    rows = [
        ("TEST-PO-D", POStatus.draft, DeliveryChannel.local, 0),
        ("TEST-PO-O", POStatus.ordered, DeliveryChannel.shipment_b, 0),
        ("TEST-PO-P", POStatus.partial, DeliveryChannel.shipment_a, 4),
        ("TEST-PO-R", POStatus.received, DeliveryChannel.local, 10),
        ("TEST-PO-C", POStatus.cancelled, DeliveryChannel.local, 0),
    ]
    for number, status, channel, received in rows:
        _raw_po(
            db_session,
            vendor,
            number=number,
            status=status,
            channel=channel,
            item=item,
            ordered=10,
            received=received,
        )
    db_session.commit()

    for _ in range(2):
        rebuild_on_order(db_session, product_ids=[item.id])
        db_session.commit()

        db_session.refresh(item)
        assert item.on_order_local_14d == 0
        assert item.on_order_shipment_a_60d == 6
        assert item.on_order_shipment_b_60d == 10
        assert item.projected_stock == 16


def test_rebuild_locks_items_before_reading_outstanding(db_session, engine, make_item, vendor):
    """
    GIVEN
    - un PO ordered sur un article

    THEN
    - le SELECT ... FOR UPDATE sur inventory_items part AVANT l'agrégat SUM
      (une réception concurrente est donc committée avant d'être lue)
    """
    item = make_item(in_stock=0)
    _raw_po(
        db_session,
        vendor,
        number="TEST-PO-L",
        status=POStatus.ordered,
        channel=DeliveryChannel.local,
        item=item,
        ordered=10,
    )
    db_session.commit()

    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(" ".join(statement.lower().split()))

    event.listen(engine, "before_cursor_execute", _record)
    try:
        rebuild_on_order(db_session, product_ids=[item.id])
    finally:
        event.remove(engine, "before_cursor_execute", _record)
    db_session.commit()

    lock_at = next(i for i, s in enumerate(statements) if s.startswith("select") and "from inventory_items" in s)
    sum_at = next(i for i, s in enumerate(statements) if "sum(" in s)
    assert lock_at < sum_at
    if engine.dialect.name == "postgresql":
        assert "for update" in statements[lock_at]

    db_session.refresh(item)
    assert item.on_order_local_14d == 10
