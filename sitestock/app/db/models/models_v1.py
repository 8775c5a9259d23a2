from __future__ import annotations

from datetime import datetime, date, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    String,
    Integer,
    DateTime,
    Date,
    Boolean,
    ForeignKey,
    Numeric,
    Text,
    Enum,
    JSON,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sitestock.app.db.base import Base, BigIntPK
from sitestock.app.db.models.core_types import (
    Role,
    ProjectStatus,
    ClaimStatus,
    ClaimType,
    ReturnStatus,
    RequestStatus,
    AdjustmentReason,
    POStatus,
    DeliveryChannel,
)


ROLE_ENUM = Enum(Role, name="role")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- AUTH ----------
class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(ROLE_ENUM, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# ---------- MASTER DATA ----------
class Vendor(Base):
    __tablename__ = "vendors"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255))
    contact_phone: Mapped[str | None] = mapped_column(String(64))
    country: Mapped[str | None] = mapped_column(String(100))
    lead_time_days: Mapped[int] = mapped_column(Integer, default=14, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (CheckConstraint("lead_time_days >= 0", name="ck_vendor_lead_time_nonneg"),)


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    in_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    allocated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    consumed_30d: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Reconstruits depuis les PO engagés, jamais écrits à la main
    on_order_local_14d: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_order_shipment_a_60d: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    on_order_shipment_b_60d: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    signed_quotations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    safety_stock: Mapped[int] = mapped_column(Integer, default=25, nullable=False)
    # Dérivé : voir services.inventory.compute_projected_stock
    projected_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("in_stock >= 0", name="ck_item_in_stock_nonneg"),
        CheckConstraint("allocated >= 0", name="ck_item_allocated_nonneg"),
        CheckConstraint("safety_stock >= 0", name="ck_item_safety_stock_nonneg"),
        CheckConstraint("unit_cost >= 0", name="ck_item_unit_cost_nonneg"),
    )


class ProductVendor(Base):
    """Fournisseurs d'un article. Au plus un fournisseur principal par article."""

    __tablename__ = "product_vendors"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    vendor_sku: Mapped[str | None] = mapped_column(String(64))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    minimum_order_qty: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    lead_time_days: Mapped[int] = mapped_column(Integer, default=14, nullable=False)
    last_order_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    product: Mapped[InventoryItem] = relationship()
    vendor: Mapped[Vendor] = relationship()

    __table_args__ = (
        UniqueConstraint("product_id", "vendor_id", name="uq_product_vendor"),
        CheckConstraint("unit_price >= 0", name="ck_pv_unit_price_nonneg"),
        CheckConstraint("minimum_order_qty > 0", name="ck_pv_moq_pos"),
        CheckConstraint("lead_time_days >= 0", name="ck_pv_lead_time_nonneg"),
    )


# ---------- PROJECTS ----------
class Project(Base):
    __tablename__ = "projects"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[ProjectStatus] = mapped_column(
        Enum(ProjectStatus, name="project_status"),
        default=ProjectStatus.active,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    materials: Mapped[list["ProjectMaterial"]] = relationship(back_populates="project", cascade="all, delete-orphan")


class UserProject(Base):
    __tablename__ = "user_projects"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    project: Mapped[Project] = relationship()

    __table_args__ = (UniqueConstraint("user_id", "project_id", name="uq_user_project"),)


class ProjectMaterial(Base):
    __tablename__ = "project_materials"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    phase: Mapped[str | None] = mapped_column(String(64))
    required_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    claimed_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    project: Mapped[Project] = relationship(back_populates="materials")
    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (
        UniqueConstraint("project_id", "product_id", name="uq_project_material_product"),
        CheckConstraint("required_quantity >= 0", name="ck_pm_required_nonneg"),
        CheckConstraint("claimed_quantity >= 0", name="ck_pm_claimed_nonneg"),
        CheckConstraint("claimed_quantity <= required_quantity", name="ck_pm_claimed_le_required"),
    )


class ProjectTemplate(Base):
    __tablename__ = "project_templates"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    items: Mapped[list["ProjectTemplateItem"]] = relationship(back_populates="template", cascade="all, delete-orphan")


class ProjectTemplateItem(Base):
    __tablename__ = "project_template_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    template_id: Mapped[int] = mapped_column(ForeignKey("project_templates.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    phase: Mapped[str | None] = mapped_column(String(64))
    required_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    template: Mapped[ProjectTemplate] = relationship(back_populates="items")

    __table_args__ = (CheckConstraint("required_quantity > 0", name="ck_template_item_qty_pos"),)


# ---------- CLAIMS / RETURNS ----------
class Claim(Base):
    __tablename__ = "claims"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    claim_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    requested_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    requested_by_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[ClaimStatus] = mapped_column(
        Enum(ClaimStatus, name="claim_status"),
        default=ClaimStatus.pending,
        nullable=False,
        index=True,
    )
    claim_type: Mapped[ClaimType] = mapped_column(
        Enum(ClaimType, name="claim_type"),
        default=ClaimType.standard,
        nullable=False,
    )
    emergency_reason: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    photo_url: Mapped[str | None] = mapped_column(String(512))

    denial_reason: Mapped[str | None] = mapped_column(Text)
    processed_by: Mapped[str | None] = mapped_column(String(200))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    project: Mapped[Project] = relationship()
    items: Mapped[list["ClaimItem"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="ClaimItem.id",
    )


class ClaimItem(Base):
    __tablename__ = "claim_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    claim_id: Mapped[int] = mapped_column(ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_approved: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    claim: Mapped[Claim] = relationship(back_populates="items")
    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_requested > 0", name="ck_claim_item_requested_pos"),
        CheckConstraint("quantity_approved >= 0", name="ck_claim_item_approved_nonneg"),
        CheckConstraint("quantity_approved <= quantity_requested", name="ck_claim_item_approved_le_requested"),
    )


class Return(Base):
    __tablename__ = "returns"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    return_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    claim_id: Mapped[int | None] = mapped_column(ForeignKey("claims.id", ondelete="SET NULL"))
    requested_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    requested_by_name: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[ReturnStatus] = mapped_column(
        Enum(ReturnStatus, name="return_status"),
        default=ReturnStatus.pending,
        nullable=False,
        index=True,
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    photo_url: Mapped[str | None] = mapped_column(String(512))

    rejection_reason: Mapped[str | None] = mapped_column(Text)
    processed_by: Mapped[str | None] = mapped_column(String(200))
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    project: Mapped[Project] = relationship()
    items: Mapped[list["ReturnItem"]] = relationship(
        back_populates="material_return",
        cascade="all, delete-orphan",
        order_by="ReturnItem.id",
    )


class ReturnItem(Base):
    __tablename__ = "return_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    return_id: Mapped[int] = mapped_column(ForeignKey("returns.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    material_return: Mapped[Return] = relationship(back_populates="items")
    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (CheckConstraint("quantity > 0", name="ck_return_item_qty_pos"),)


# ---------- INTERNAL REQUESTS ----------
class InternalRequest(Base):
    """Demande interne de matériel vers une propriété. Ne touche pas au stock."""

    __tablename__ = "internal_requests"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    request_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False)
    requester_email: Mapped[str | None] = mapped_column(String(255))
    destination_property: Mapped[str] = mapped_column(String(255), nullable=False)
    project_id: Mapped[int | None] = mapped_column(ForeignKey("projects.id", ondelete="SET NULL"), index=True)

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status"),
        default=RequestStatus.pending,
        nullable=False,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    photo_url: Mapped[str | None] = mapped_column(String(512))
    created_by_role: Mapped[str] = mapped_column(String(32), nullable=False)
    fulfilled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    processed_by: Mapped[str | None] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    project: Mapped[Project | None] = relationship()
    items: Mapped[list["RequestItem"]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestItem.id",
    )


class RequestItem(Base):
    __tablename__ = "request_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("internal_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_fulfilled: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    request: Mapped[InternalRequest] = relationship(back_populates="items")
    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_requested > 0", name="ck_request_item_requested_pos"),
        CheckConstraint("quantity_fulfilled >= 0", name="ck_request_item_fulfilled_nonneg"),
        CheckConstraint("quantity_fulfilled <= quantity_requested", name="ck_request_item_fulfilled_le_requested"),
    )


# ---------- INVENTORY ----------
class StockAdjustment(Base):
    """Append-only : jamais mis à jour après insertion."""

    __tablename__ = "stock_adjustments"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    adjustment_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[AdjustmentReason] = mapped_column(Enum(AdjustmentReason, name="adjustment_reason"), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)

    actor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    actor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_adjustment_change_nonzero"),
        CheckConstraint("new_stock = previous_stock + quantity_change", name="ck_adjustment_snapshot"),
        Index("ix_stock_adjustments_product_time", "product_id", "created_at"),
    )


# ---------- PROCUREMENT ----------
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    po_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    vendor_id: Mapped[int] = mapped_column(ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True)
    status: Mapped[POStatus] = mapped_column(Enum(POStatus, name="po_status"), default=POStatus.draft, nullable=False)
    channel: Mapped[DeliveryChannel] = mapped_column(
        Enum(DeliveryChannel, name="delivery_channel"),
        default=DeliveryChannel.local,
        nullable=False,
    )

    order_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expected_delivery_date: Mapped[date | None] = mapped_column(Date)
    received_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    vendor: Mapped[Vendor] = relationship()
    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        back_populates="po",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )

    @property
    def total_amount(self) -> Decimal:
        return sum((it.quantity_ordered * it.unit_cost for it in self.items), Decimal("0.00"))


class PurchaseOrderItem(Base):
    __tablename__ = "purchase_order_items"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    po_id: Mapped[int] = mapped_column(ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("inventory_items.id", ondelete="RESTRICT"), nullable=False)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    po: Mapped[PurchaseOrder] = relationship(back_populates="items")
    product: Mapped[InventoryItem] = relationship()

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_item_qty_pos"),
        CheckConstraint("quantity_received >= 0", name="ck_po_item_received_nonneg"),
        CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_item_received_le_ordered"),
        CheckConstraint("unit_cost >= 0", name="ck_po_item_unit_cost_nonneg"),
    )


# ---------- NOTIFICATIONS ----------
class Notification(Base):
    __tablename__ = "notifications"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    recipient_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    recipient_role: Mapped[Role | None] = mapped_column(ROLE_ENUM, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_type: Mapped[str] = mapped_column(String(64), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    related_claim_id: Mapped[int | None] = mapped_column(ForeignKey("claims.id", ondelete="SET NULL"))
    related_return_id: Mapped[int | None] = mapped_column(ForeignKey("returns.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "recipient_user_id IS NOT NULL OR recipient_role IS NOT NULL",
            name="ck_notification_has_recipient",
        ),
    )


# ---------- AUDIT ----------
class AuditLog(Base):
    __tablename__ = "audit_logs"
    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    actor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(64))
    entity_id: Mapped[str | None] = mapped_column(String(64))
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_entity", "entity_type", "entity_id"),)


# ---------- APPEND-ONLY ----------
@event.listens_for(StockAdjustment, "before_update")
@event.listens_for(AuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise ValueError(f"{type(target).__name__} rows are append-only")
