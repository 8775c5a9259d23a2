import pytest

from sitestock.app.core.errors import NotFound, ValidationFailure
from sitestock.app.db.models.core_types import AdjustmentReason
from sitestock.app.db.models.models_v1 import AuditLog
from sitestock.app.db.session import unit_of_work
from sitestock.services.inventory import create_stock_adjustment, list_stock_adjustments


def test_adjustment_snapshots_previous_and_new_stock(db_session, make_item, warehouse):
    """
    GIVEN
    - in_stock = 10
    - un ajustement de -5 (damaged)

    THEN
    - in_stock == 5
    - previous_stock == 10, new_stock == 5
    - une ligne d'audit décrit le delta
    """
    item = make_item(in_stock=10)

    with unit_of_work(db_session):
        adj = create_stock_adjustment(
            db_session,
            product_id=item.id,
            quantity_change=-5,
            reason=AdjustmentReason.damaged,
            actor=warehouse,
            notes="Forklift accident",
        )

    db_session.refresh(item)
    assert item.in_stock == 5
    assert item.projected_stock == 5
    assert adj.previous_stock == 10
    assert adj.new_stock == 5
    assert adj.new_stock == adj.previous_stock + adj.quantity_change
    assert adj.actor_name == warehouse.name
    assert adj.adjustment_number.startswith("ADJ-")

    log = db_session.query(AuditLog).filter_by(action_type="stock_adjustment_created").one()
    assert "-5 (10 → 5)" in log.description


def test_adjustment_cannot_make_stock_negative(db_session, make_item, warehouse):
    item = make_item(in_stock=3)

    with pytest.raises(ValidationFailure):
        with unit_of_work(db_session):
            create_stock_adjustment(
                db_session,
                product_id=item.id,
                quantity_change=-4,
                reason=AdjustmentReason.lost,
                actor=warehouse,
            )

    db_session.refresh(item)
    assert item.in_stock == 3
    assert list_stock_adjustments(db_session) == []


def test_zero_adjustment_and_unknown_item(db_session, make_item, warehouse):
    item = make_item(in_stock=3)

    with pytest.raises(ValidationFailure):
        create_stock_adjustment(
            db_session, product_id=item.id, quantity_change=0, reason=AdjustmentReason.other, actor=warehouse
        )
    with pytest.raises(NotFound):
        create_stock_adjustment(
            db_session, product_id=999_999, quantity_change=1, reason=AdjustmentReason.found, actor=warehouse
        )


def test_adjustments_are_append_only(db_session, make_item, warehouse):
    item = make_item(in_stock=10)
    with unit_of_work(db_session):
        adj = create_stock_adjustment(
            db_session, product_id=item.id, quantity_change=2, reason=AdjustmentReason.found, actor=warehouse
        )

    adj.notes = "edited afterwards"
    with pytest.raises(ValueError):
        db_session.flush()
    db_session.rollback()


def test_list_adjustments_filters_by_reason(db_session, make_item, warehouse):
    item = make_item(in_stock=10)
    with unit_of_work(db_session):
        create_stock_adjustment(
            db_session, product_id=item.id, quantity_change=3, reason=AdjustmentReason.found, actor=warehouse
        )
    with unit_of_work(db_session):
        create_stock_adjustment(
            db_session, product_id=item.id, quantity_change=-1, reason=AdjustmentReason.damaged, actor=warehouse
        )

    assert len(list_stock_adjustments(db_session)) == 2
    damaged = list_stock_adjustments(db_session, reason=AdjustmentReason.damaged)
    assert [a.quantity_change for a in damaged] == [-1]
    db_session.refresh(item)
    assert item.in_stock == 12
