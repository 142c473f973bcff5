"""Domain models"""

# Lead models
from .lead import (
    LeadStatus,
    ApprovalStatus,
    SoldItem,
    Lead,
    RETRY_STATUSES,
    RELEASE_STATUSES,
    CANCELLATION_STATUSES,
    DELIVERED_STATUSES,
    TERMINAL_STATUSES,
    CALL_OUTCOME_STATUSES,
    APPLICATION_STATUSES,
)

# Assignment models
from .assignment import (
    LeadBucket,
    BUCKET_PRIORITY,
    BUCKET_LABELS,
    AssignmentPolicy,
    ClaimedLead,
    ClaimResponse,
)

# Audit / inventory / actor
from .audit import AuditAction, AuditLogEntry
from .inventory import InventoryStatus, InventoryItem
from .actor import Role, Actor

__all__ = [
    # Lead models
    "LeadStatus",
    "ApprovalStatus",
    "SoldItem",
    "Lead",
    "RETRY_STATUSES",
    "RELEASE_STATUSES",
    "CANCELLATION_STATUSES",
    "DELIVERED_STATUSES",
    "TERMINAL_STATUSES",
    "CALL_OUTCOME_STATUSES",
    "APPLICATION_STATUSES",
    # Assignment models
    "LeadBucket",
    "BUCKET_PRIORITY",
    "BUCKET_LABELS",
    "AssignmentPolicy",
    "ClaimedLead",
    "ClaimResponse",
    # Audit / inventory / actor
    "AuditAction",
    "AuditLogEntry",
    "InventoryStatus",
    "InventoryItem",
    "Role",
    "Actor",
]
