"""add internal requests, user-project assignments and product-vendor links

Revision ID: c3e5a7b90003
Revises: b2d4f6a80002
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c3e5a7b90003"
down_revision: Union[str, Sequence[str], None] = "b2d4f6a80002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

REQUEST_STATUS = sa.Enum("pending", "fulfilled", "cancelled", name="request_status")
TS = sa.DateTime(timezone=True)


def _pk() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), primary_key=True)


def upgrade() -> None:
    # ---------- ARTICLES <-> FOURNISSEURS ----------
    op.create_table(
        "product_vendors",
        _pk(),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vendor_id", sa.BigInteger(), sa.ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("vendor_sku", sa.String(64)),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("minimum_order_qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("lead_time_days", sa.Integer(), nullable=False, server_default="14"),
        sa.Column("last_order_date", TS),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("product_id", "vendor_id", name="uq_product_vendor"),
        sa.CheckConstraint("unit_price >= 0", name="ck_pv_unit_price_nonneg"),
        sa.CheckConstraint("minimum_order_qty > 0", name="ck_pv_moq_pos"),
        sa.CheckConstraint("lead_time_days >= 0", name="ck_pv_lead_time_nonneg"),
    )
    op.create_index("ix_product_vendors_product_id", "product_vendors", ["product_id"])
    op.create_index("ix_product_vendors_vendor_id", "product_vendors", ["vendor_id"])

    # ---------- AFFECTATIONS ----------
    op.create_table(
        "user_projects",
        _pk(),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("user_id", "project_id", name="uq_user_project"),
    )
    op.create_index("ix_user_projects_user_id", "user_projects", ["user_id"])
    op.create_index("ix_user_projects_project_id", "user_projects", ["project_id"])

    # ---------- DEMANDES INTERNES ----------
    op.create_table(
        "internal_requests",
        _pk(),
        sa.Column("request_number", sa.String(32), nullable=False, unique=True),
        sa.Column("requester_name", sa.String(200), nullable=False),
        sa.Column("requester_email", sa.String(255)),
        sa.Column("destination_property", sa.String(255), nullable=False),
        sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id", ondelete="SET NULL")),
        sa.Column("status", REQUEST_STATUS, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("photo_url", sa.String(512)),
        sa.Column("created_by_role", sa.String(32), nullable=False),
        sa.Column("fulfilled_date", TS),
        sa.Column("processed_by", sa.String(200)),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_internal_requests_project_id", "internal_requests", ["project_id"])
    op.create_index("ix_internal_requests_status", "internal_requests", ["status"])

    op.create_table(
        "request_items",
        _pk(),
        sa.Column(
            "request_id",
            sa.BigInteger(),
            sa.ForeignKey("internal_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_requested", sa.Integer(), nullable=False),
        sa.Column("quantity_fulfilled", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity_requested > 0", name="ck_request_item_requested_pos"),
        sa.CheckConstraint("quantity_fulfilled >= 0", name="ck_request_item_fulfilled_nonneg"),
        sa.CheckConstraint("quantity_fulfilled <= quantity_requested", name="ck_request_item_fulfilled_le_requested"),
    )
    op.create_index("ix_request_items_request_id", "request_items", ["request_id"])


def downgrade() -> None:
    for table in ("request_items", "internal_requests", "user_projects", "product_vendors"):
        op.drop_table(table)
    REQUEST_STATUS.drop(op.get_bind(), checkfirst=True)
