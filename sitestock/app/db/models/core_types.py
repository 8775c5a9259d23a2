import enum

class Role(str, enum.Enum):
    ceo_admin = "ceo_admin"
    warehouse_admin = "warehouse_admin"
    onsite_team = "onsite_team"

class ProjectStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    on_hold = "on_hold"

class ClaimStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    partial_approved = "partial_approved"
    denied = "denied"

class ClaimType(str, enum.Enum):
    standard = "standard"
    emergency = "emergency"

class ReturnStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"

class RequestStatus(str, enum.Enum):
    pending = "pending"
    fulfilled = "fulfilled"
    cancelled = "cancelled"

class AdjustmentReason(str, enum.Enum):
    damaged = "damaged"
    lost = "lost"
    found = "found"
    count_correction = "count_correction"
    other = "other"

class POStatus(str, enum.Enum):
    draft = "draft"
    ordered = "ordered"
    partial = "partial"
    received = "received"
    cancelled = "cancelled"

class DeliveryChannel(str, enum.Enum):
    local = "local"            # on_order_local_14d
    shipment_a = "shipment_a"  # on_order_shipment_a_60d
    shipment_b = "shipment_b"  # on_order_shipment_b_60d

class StockHealth(str, enum.Enum):
    critical = "critical"
    reorder = "reorder"
    healthy = "healthy"

class AuditAction(str, enum.Enum):
    claim_created = "claim_created"
    claim_approved = "claim_approved"
    claim_partially_approved = "claim_partially_approved"
    claim_denied = "claim_denied"
    return_created = "return_created"
    return_approved = "return_approved"
    return_rejected = "return_rejected"
    stock_adjustment_created = "stock_adjustment_created"
    po_created = "po_created"
    po_ordered = "po_ordered"
    po_partially_received = "po_partially_received"
    po_received = "po_received"
    po_cancelled = "po_cancelled"
    template_applied = "template_applied"
    request_created = "request_created"
    request_fulfilled = "request_fulfilled"
    request_cancelled = "request_cancelled"
    user_assigned_to_project = "user_assigned_to_project"
    vendor_linked = "vendor_linked"

class NotificationType(str, enum.Enum):
    claim_submitted = "claim_submitted"
    emergency_claim_submitted = "emergency_claim_submitted"
    claim_pending_review = "claim_pending_review"
    emergency_claim_alert = "emergency_claim_alert"
    claim_approved = "claim_approved"
    claim_partially_approved = "claim_partially_approved"
    claim_denied = "claim_denied"
    return_pending_review = "return_pending_review"
    return_approved = "return_approved"
    return_rejected = "return_rejected"
