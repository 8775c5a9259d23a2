from decimal import Decimal

import pytest

from sitestock.app.core.errors import Conflict, InvalidTransition, NotFound, ValidationFailure
from sitestock.app.db.models.core_types import DeliveryChannel, POStatus
from sitestock.app.db.models.models_v1 import AuditLog
from sitestock.app.db.session import unit_of_work
from sitestock.services.procurement import cancel_po, create_po, create_vendor, receive_po, send_po


def _po(db_session, vendor, lines, actor, **kwargs):
    with unit_of_work(db_session):
        return create_po(db_session, vendor_id=vendor.id, lines=lines, actor=actor, **kwargs)


def test_po_lifecycle_updates_stock_and_on_order(db_session, make_item, vendor, warehouse):
    """
    GIVEN
    - in_stock = 5, un PO local de 10 unités

    THEN
    - draft : rien en commande
    - ordered : on_order_local == 10, projected == 15
    - réception 4 : partial, in_stock == 9, on_order == 6
    - réception 6 : received, in_stock == 15, on_order == 0
    """
    item = make_item(in_stock=5)
    po = _po(db_session, vendor, [(item.id, 10, Decimal("8.50"))], warehouse)
    line_id = po.items[0].id

    assert po.status == POStatus.draft
    assert po.po_number.startswith("PO-")
    assert po.total_amount == Decimal("85.00")
    db_session.refresh(item)
    assert item.on_order_local_14d == 0

    with unit_of_work(db_session):
        po = send_po(db_session, po_id=po.id, actor=warehouse)
    db_session.refresh(item)
    assert po.status == POStatus.ordered
    assert po.order_date is not None
    assert item.on_order_local_14d == 10
    assert item.projected_stock == 15

    with unit_of_work(db_session):
        po = receive_po(db_session, po_id=po.id, receipts={line_id: 4}, actor=warehouse)
    db_session.refresh(item)
    assert po.status == POStatus.partial
    assert po.received_at is None
    assert item.in_stock == 9
    assert item.on_order_local_14d == 6
    assert item.projected_stock == 15

    with unit_of_work(db_session):
        po = receive_po(db_session, po_id=po.id, receipts={line_id: 6}, actor=warehouse)
    db_session.refresh(item)
    assert po.status == POStatus.received
    assert po.received_at is not None
    assert item.in_stock == 15
    assert item.on_order_local_14d == 0
    assert item.projected_stock == 15

    actions = [log.action_type for log in db_session.query(AuditLog).order_by(AuditLog.id)]
    assert actions == ["po_created", "po_ordered", "po_partially_received", "po_received"]


def test_receipt_never_exceeds_ordered(db_session, make_item, vendor, warehouse):
    item = make_item(in_stock=0)
    po = _po(db_session, vendor, [(item.id, 10, Decimal("1.00"))], warehouse)
    line_id = po.items[0].id
    with unit_of_work(db_session):
        send_po(db_session, po_id=po.id, actor=warehouse)
    with unit_of_work(db_session):
        receive_po(db_session, po_id=po.id, receipts={line_id: 8}, actor=warehouse)

    with pytest.raises(ValidationFailure):
        with unit_of_work(db_session):
            receive_po(db_session, po_id=po.id, receipts={line_id: 3}, actor=warehouse)

    db_session.refresh(item)
    db_session.refresh(po)
    assert item.in_stock == 8
    assert po.items[0].quantity_received == 8
    assert po.status == POStatus.partial


def test_multi_line_receipt_is_all_or_nothing(db_session, make_item, vendor, warehouse):
    a = make_item(in_stock=0)
    b = make_item(in_stock=0)
    po = _po(db_session, vendor, [(a.id, 5, Decimal("1.00")), (b.id, 5, Decimal("1.00"))], warehouse)
    line_a, line_b = (it.id for it in po.items)
    with unit_of_work(db_session):
        send_po(db_session, po_id=po.id, actor=warehouse)

    with pytest.raises(ValidationFailure):
        with unit_of_work(db_session):
            receive_po(db_session, po_id=po.id, receipts={line_a: 5, line_b: 6}, actor=warehouse)
    with pytest.raises(NotFound):
        with unit_of_work(db_session):
            receive_po(db_session, po_id=po.id, receipts={line_a: 5, 999_999: 1}, actor=warehouse)

    db_session.refresh(a)
    db_session.refresh(b)
    assert (a.in_stock, b.in_stock) == (0, 0)
    assert (a.on_order_local_14d, b.on_order_local_14d) == (5, 5)


def test_draft_po_cannot_be_received(db_session, make_item, vendor, warehouse):
    item = make_item()
    po = _po(db_session, vendor, [(item.id, 10, Decimal("1.00"))], warehouse)

    with pytest.raises(InvalidTransition):
        receive_po(db_session, po_id=po.id, receipts={po.items[0].id: 1}, actor=warehouse)


def test_cancel_ordered_po_releases_on_order(db_session, make_item, vendor, warehouse):
    item = make_item(in_stock=0)
    po = _po(db_session, vendor, [(item.id, 12, Decimal("2.00"))], warehouse, channel=DeliveryChannel.shipment_a)
    with unit_of_work(db_session):
        send_po(db_session, po_id=po.id, actor=warehouse)
    db_session.refresh(item)
    assert item.on_order_shipment_a_60d == 12

    with unit_of_work(db_session):
        po = cancel_po(db_session, po_id=po.id, actor=warehouse)

    db_session.refresh(item)
    assert po.status == POStatus.cancelled
    assert item.on_order_shipment_a_60d == 0
    assert item.projected_stock == 0

    with pytest.raises(InvalidTransition):
        send_po(db_session, po_id=po.id, actor=warehouse)


def test_po_with_receipts_cannot_be_cancelled(db_session, make_item, vendor, warehouse):
    item = make_item()
    po = _po(db_session, vendor, [(item.id, 10, Decimal("1.00"))], warehouse)
    with unit_of_work(db_session):
        send_po(db_session, po_id=po.id, actor=warehouse)
    with unit_of_work(db_session):
        receive_po(db_session, po_id=po.id, receipts={po.items[0].id: 1}, actor=warehouse)

    with pytest.raises(InvalidTransition):
        cancel_po(db_session, po_id=po.id, actor=warehouse)


def test_create_po_validations(db_session, make_item, vendor, warehouse):
    item = make_item()

    with pytest.raises(NotFound):
        create_po(db_session, vendor_id=999_999, lines=[(item.id, 1, Decimal("1"))], actor=warehouse)
    with pytest.raises(ValidationFailure):
        create_po(db_session, vendor_id=vendor.id, lines=[], actor=warehouse)
    with pytest.raises(ValidationFailure):
        create_po(db_session, vendor_id=vendor.id, lines=[(item.id, 0, Decimal("1"))], actor=warehouse)
    with pytest.raises(NotFound):
        create_po(db_session, vendor_id=vendor.id, lines=[(999_999, 1, Decimal("1"))], actor=warehouse)


def test_duplicate_vendor_conflicts(db_session, vendor):
    with pytest.raises(Conflict):
        create_vendor(db_session, name=vendor.name)
