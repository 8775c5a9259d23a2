from datetime import datetime, timezone

from sitestock.app.db.models.models_v1 import StockAdjustment
from sitestock.app.db.session import unit_of_work
from sitestock.app.db.models.core_types import AdjustmentReason
from sitestock.services.inventory import create_stock_adjustment
from sitestock.services.numbering import ADJUSTMENT_PREFIX, next_document_number


def test_numbers_are_sequential_per_year(db_session, make_item, warehouse):
    item = make_item(in_stock=10)
    year = datetime.now(timezone.utc).year

    numbers = []
    for _ in range(3):
        with unit_of_work(db_session):
            numbers.append(
                create_stock_adjustment(
                    db_session,
                    product_id=item.id,
                    quantity_change=1,
                    reason=AdjustmentReason.found,
                    actor=warehouse,
                ).adjustment_number
            )

    assert numbers == [f"ADJ-{year}-00001", f"ADJ-{year}-00002", f"ADJ-{year}-00003"]


def test_new_year_restarts_sequence(db_session):
    stamp = datetime(2031, 1, 1, tzinfo=timezone.utc)
    assert next_document_number(db_session, StockAdjustment.adjustment_number, ADJUSTMENT_PREFIX, now=stamp) == (
        "ADJ-2031-00001"
    )
