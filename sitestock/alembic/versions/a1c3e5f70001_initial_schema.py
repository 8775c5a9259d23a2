"""initial schema

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-09-14
"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1c3e5f70001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum("ceo_admin", "warehouse_admin", "onsite_team", name="role")
PROJECT_STATUS = sa.Enum("active", "completed", "on_hold", name="project_status")
CLAIM_STATUS = sa.Enum("pending", "approved", "partial_approved", "denied", name="claim_status")
CLAIM_TYPE = sa.Enum("standard", "emergency", name="claim_type")
RETURN_STATUS = sa.Enum("pending", "approved", "rejected", name="return_status")
ADJUSTMENT_REASON = sa.Enum("damaged", "lost", "found", "count_correction", "other", name="adjustment_reason")
PO_STATUS = sa.Enum("draft", "ordered", "partial", "received", "cancelled", name="po_status")
DELIVERY_CHANNEL = sa.Enum("local", "shipment_a", "shipment_b", name="delivery_channel")

TS = sa.DateTime(timezone=True)


def _pk() -> sa.Column:
    return sa.Column("id", sa.BigInteger(), primary_key=True)


def upgrade() -> None:
    # ---------- AUTH / CATALOGUE ----------
    op.create_table(
        "users",
        _pk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", ROLE, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_table(
        "vendors",
        _pk(),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("contact_email", sa.String(255)),
        sa.Column("contact_phone", sa.String(64)),
        sa.Column("country", sa.String(100)),
        sa.Column("lead_time_days", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("lead_time_days >= 0", name="ck_vendor_lead_time_nonneg"),
    )
    op.create_table(
        "inventory_items",
        _pk(),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("in_stock", sa.Integer(), nullable=False),
        sa.Column("allocated", sa.Integer(), nullable=False),
        sa.Column("consumed_30d", sa.Integer(), nullable=False),
        sa.Column("on_order_local_14d", sa.Integer(), nullable=False),
        sa.Column("on_order_shipment_a_60d", sa.Integer(), nullable=False),
        sa.Column("on_order_shipment_b_60d", sa.Integer(), nullable=False),
        sa.Column("signed_quotations", sa.Integer(), nullable=False),
        sa.Column("safety_stock", sa.Integer(), nullable=False),
        sa.Column("projected_stock", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
    )

    # ---------- PROJETS ----------
    op.create_table(
        "projects",
        _pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("status", PROJECT_STATUS, nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_table(
        "project_materials",
        _pk(),
        sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("phase", sa.String(64)),
        sa.Column("required_quantity", sa.Integer(), nullable=False),
        sa.Column("claimed_quantity", sa.Integer(), nullable=False),
        sa.UniqueConstraint("project_id", "product_id", name="uq_project_material_product"),
    )
    op.create_table(
        "project_templates",
        _pk(),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_table(
        "project_template_items",
        _pk(),
        sa.Column(
            "template_id",
            sa.BigInteger(),
            sa.ForeignKey("project_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("phase", sa.String(64)),
        sa.Column("required_quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("required_quantity > 0", name="ck_template_item_qty_pos"),
    )

    # ---------- CLAIMS / RETOURS ----------
    op.create_table(
        "claims",
        _pk(),
        sa.Column("claim_number", sa.String(32), nullable=False, unique=True),
        sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("requested_by_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("requested_by_name", sa.String(200), nullable=False),
        sa.Column("status", CLAIM_STATUS, nullable=False),
        sa.Column("claim_type", CLAIM_TYPE, nullable=False),
        sa.Column("emergency_reason", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("photo_url", sa.String(512)),
        sa.Column("denial_reason", sa.Text()),
        sa.Column("processed_by", sa.String(200)),
        sa.Column("processed_at", TS),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_claims_project_id", "claims", ["project_id"])
    op.create_index("ix_claims_status", "claims", ["status"])

    op.create_table(
        "claim_items",
        _pk(),
        sa.Column("claim_id", sa.BigInteger(), sa.ForeignKey("claims.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_requested", sa.Integer(), nullable=False),
        sa.Column("quantity_approved", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity_requested > 0", name="ck_claim_item_requested_pos"),
        sa.CheckConstraint("quantity_approved >= 0", name="ck_claim_item_approved_nonneg"),
        sa.CheckConstraint("quantity_approved <= quantity_requested", name="ck_claim_item_approved_le_requested"),
    )
    op.create_index("ix_claim_items_claim_id", "claim_items", ["claim_id"])

    op.create_table(
        "returns",
        _pk(),
        sa.Column("return_number", sa.String(32), nullable=False, unique=True),
        sa.Column("project_id", sa.BigInteger(), sa.ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("claim_id", sa.BigInteger(), sa.ForeignKey("claims.id", ondelete="SET NULL")),
        sa.Column("requested_by_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("requested_by_name", sa.String(200), nullable=False),
        sa.Column("status", RETURN_STATUS, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("photo_url", sa.String(512)),
        sa.Column("rejection_reason", sa.Text()),
        sa.Column("processed_by", sa.String(200)),
        sa.Column("processed_at", TS),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_returns_project_id", "returns", ["project_id"])
    op.create_index("ix_returns_status", "returns", ["status"])

    op.create_table(
        "return_items",
        _pk(),
        sa.Column("return_id", sa.BigInteger(), sa.ForeignKey("returns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_return_item_qty_pos"),
    )
    op.create_index("ix_return_items_return_id", "return_items", ["return_id"])

    # ---------- AJUSTEMENTS ----------
    op.create_table(
        "stock_adjustments",
        _pk(),
        sa.Column("adjustment_number", sa.String(32), nullable=False, unique=True),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("reason", ADJUSTMENT_REASON, nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("previous_stock", sa.Integer(), nullable=False),
        sa.Column("new_stock", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("actor_name", sa.String(200), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("quantity_change <> 0", name="ck_adjustment_change_nonzero"),
        sa.CheckConstraint("new_stock = previous_stock + quantity_change", name="ck_adjustment_snapshot"),
    )
    op.create_index("ix_stock_adjustments_product_id", "stock_adjustments", ["product_id"])
    op.create_index("ix_stock_adjustments_product_time", "stock_adjustments", ["product_id", "created_at"])

    # ---------- PROCUREMENT ----------
    op.create_table(
        "purchase_orders",
        _pk(),
        sa.Column("po_number", sa.String(32), nullable=False, unique=True),
        sa.Column("vendor_id", sa.BigInteger(), sa.ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("status", PO_STATUS, nullable=False),
        sa.Column("channel", DELIVERY_CHANNEL, nullable=False),
        sa.Column("order_date", TS),
        sa.Column("expected_delivery_date", sa.Date()),
        sa.Column("received_at", TS),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(200)),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_purchase_orders_vendor_id", "purchase_orders", ["vendor_id"])

    op.create_table(
        "purchase_order_items",
        _pk(),
        sa.Column("po_id", sa.BigInteger(), sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.BigInteger(), sa.ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_ordered", sa.Integer(), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(10, 2), nullable=False),
        sa.CheckConstraint("quantity_ordered > 0", name="ck_po_item_qty_pos"),
        sa.CheckConstraint("quantity_received >= 0", name="ck_po_item_received_nonneg"),
        sa.CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_item_received_le_ordered"),
        sa.CheckConstraint("unit_cost >= 0", name="ck_po_item_unit_cost_nonneg"),
    )
    op.create_index("ix_purchase_order_items_po_id", "purchase_order_items", ["po_id"])

    # ---------- JOURNAUX ----------
    op.create_table(
        "notifications",
        _pk(),
        sa.Column("recipient_user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("recipient_role", postgresql.ENUM(name="role", create_type=False)),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(64), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("related_claim_id", sa.BigInteger(), sa.ForeignKey("claims.id", ondelete="SET NULL")),
        sa.Column("related_return_id", sa.BigInteger(), sa.ForeignKey("returns.id", ondelete="SET NULL")),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint(
            "recipient_user_id IS NOT NULL OR recipient_role IS NOT NULL",
            name="ck_notification_has_recipient",
        ),
    )
    op.create_index("ix_notifications_recipient_user_id", "notifications", ["recipient_user_id"])
    op.create_index("ix_notifications_recipient_role", "notifications", ["recipient_role"])

    op.create_table(
        "audit_logs",
        _pk(),
        sa.Column("actor_name", sa.String(200), nullable=False),
        sa.Column("actor_role", sa.String(32), nullable=False),
        sa.Column("action_type", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.String(64)),
        sa.Column("entity_id", sa.String(64)),
        sa.Column("meta", sa.JSON()),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("ix_audit_logs_action_type", "audit_logs", ["action_type"])
    op.create_index("ix_audit_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "notifications",
        "purchase_order_items",
        "purchase_orders",
        "stock_adjustments",
        "return_items",
        "returns",
        "claim_items",
        "claims",
        "project_template_items",
        "project_templates",
        "project_materials",
        "projects",
        "inventory_items",
        "vendors",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        DELIVERY_CHANNEL,
        PO_STATUS,
        ADJUSTMENT_REASON,
        RETURN_STATUS,
        CLAIM_TYPE,
        CLAIM_STATUS,
        PROJECT_STATUS,
        ROLE,
    ):
        enum.drop(bind, checkfirst=True)
