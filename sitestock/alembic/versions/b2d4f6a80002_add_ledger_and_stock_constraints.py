"""add ledger and stock nonneg constraints

Revision ID: b2d4f6a80002
Revises: a1c3e5f70001
Create Date: 2026-09-21
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b2d4f6a80002"
down_revision: Union[str, Sequence[str], None] = "a1c3e5f70001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ITEMS = "inventory_items"
LEDGER = "project_materials"

# (table, nom, expression)
CHECKS = [
    (ITEMS, "ck_item_in_stock_nonneg", "in_stock >= 0"),
    (ITEMS, "ck_item_allocated_nonneg", "allocated >= 0"),
    (ITEMS, "ck_item_safety_stock_nonneg", "safety_stock >= 0"),
    (ITEMS, "ck_item_unit_cost_nonneg", "unit_cost >= 0"),
    (LEDGER, "ck_pm_required_nonneg", "required_quantity >= 0"),
    (LEDGER, "ck_pm_claimed_nonneg", "claimed_quantity >= 0"),
    (LEDGER, "ck_pm_claimed_le_required", "claimed_quantity <= required_quantity"),
]


def _add_check_if_missing(table_name: str, constraint_name: str, check_sql: str) -> None:
    # Idempotent Postgres
    op.execute(
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1
                FROM pg_constraint c
                JOIN pg_class t ON t.oid = c.conrelid
                WHERE t.relname = '{table_name}'
                  AND c.conname = '{constraint_name}'
            ) THEN
                ALTER TABLE {table_name}
                ADD CONSTRAINT {constraint_name}
                CHECK ({check_sql});
            END IF;
        END $$;
        """
    )


def upgrade() -> None:
    # --- données déjà sales : on ramène dans les bornes avant d'ajouter les CHECK
    op.execute(f"UPDATE {ITEMS} SET in_stock = 0 WHERE in_stock < 0;")
    op.execute(f"UPDATE {ITEMS} SET allocated = 0 WHERE allocated < 0;")
    op.execute(f"UPDATE {LEDGER} SET claimed_quantity = 0 WHERE claimed_quantity < 0;")
    op.execute(
        f"""
        UPDATE {LEDGER}
        SET claimed_quantity = required_quantity
        WHERE claimed_quantity > required_quantity;
        """
    )

    for table_name, name, sql in CHECKS:
        _add_check_if_missing(table_name, name, sql)


def downgrade() -> None:
    for table_name, name, _ in reversed(CHECKS):
        op.execute(f"ALTER TABLE {table_name} DROP CONSTRAINT IF EXISTS {name};")
