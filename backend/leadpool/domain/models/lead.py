"""
Lead Domain Models
Customer records that move through the call-center pool
"""
import json
import uuid
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Set, Any
from datetime import date, datetime
from enum import Enum


class LeadStatus(str, Enum):
    """Pipeline status of a lead. An empty status means unclassified."""
    NEW = "New"
    TO_BE_CALLED = "To Be Called"
    UNREACHABLE = "Unreachable"
    BUSY = "Busy/Line Closed"
    NO_ANSWER = "No Answer"
    WRONG_NUMBER = "Wrong Number"
    CALL_BACK_LATER = "Call Back Later"
    WHATSAPP_INFO = "Wants Info via WhatsApp"
    DECLINED_E_GOV = "Declined e-Gov Sharing"
    APPLICATION_RECEIVED = "Application Received"
    MISSING_DOCUMENTS = "Missing Documents"
    SALE_COMPLETED = "Sale Completed"
    REJECTED = "Rejected"
    NOT_ELIGIBLE = "Not Eligible"
    CANCELLED = "Cancelled"
    INVITED_TO_STORE = "Invited to Store"
    AWAITING_GUARANTOR = "Awaiting Guarantor"
    DELIVERED = "Delivered"
    APPROVED = "Approved"
    REQUEST_PENDING = "Request Pending"  # preliminary web request, no national id yet


class ApprovalStatus(str, Enum):
    """Admin decision on a submitted application"""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    GUARANTOR_REQUESTED = "Guarantor Requested"


# Status groups are plain string sets so raw column values compare directly
RETRY_STATUSES: Set[str] = {
    LeadStatus.UNREACHABLE.value,
    LeadStatus.BUSY.value,
    LeadStatus.NO_ANSWER.value,
}

# Cancelled/invalid statuses hand the lead back to the pool owner-less
RELEASE_STATUSES: Set[str] = {
    LeadStatus.WRONG_NUMBER.value,
    LeadStatus.NOT_ELIGIBLE.value,
    LeadStatus.CANCELLED.value,
}

# Statuses that need a cancellation reason
CANCELLATION_STATUSES: Set[str] = {
    LeadStatus.NOT_ELIGIBLE.value,
    LeadStatus.CANCELLED.value,
}

DELIVERED_STATUSES: Set[str] = {
    LeadStatus.DELIVERED.value,
    LeadStatus.SALE_COMPLETED.value,
}

TERMINAL_STATUSES: Set[str] = DELIVERED_STATUSES | {
    LeadStatus.REJECTED.value,
    LeadStatus.CANCELLED.value,
}

# A transition into one of these means a call just happened
CALL_OUTCOME_STATUSES: Set[str] = RETRY_STATUSES | {
    LeadStatus.WRONG_NUMBER.value,
    LeadStatus.CALL_BACK_LATER.value,
    LeadStatus.WHATSAPP_INFO.value,
    LeadStatus.DECLINED_E_GOV.value,
    LeadStatus.INVITED_TO_STORE.value,
    LeadStatus.NOT_ELIGIBLE.value,
    LeadStatus.CANCELLED.value,
    LeadStatus.APPLICATION_RECEIVED.value,
}

# Statuses that carry a full application and therefore a national id
APPLICATION_STATUSES: Set[str] = {
    LeadStatus.APPLICATION_RECEIVED.value,
    LeadStatus.MISSING_DOCUMENTS.value,
    LeadStatus.AWAITING_GUARANTOR.value,
    LeadStatus.APPROVED.value,
} | DELIVERED_STATUSES


class SoldItem(BaseModel):
    """A product handed over to the customer on an installment plan"""
    imei: str = ""
    serial_no: str = ""
    brand: str = ""
    model: str = ""
    sold_at: Optional[datetime] = None
    price: Optional[float] = None
    installment_months: Optional[int] = None


class Lead(BaseModel):
    """Customer / lead record"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    # Contact
    full_name: Optional[str] = None
    phone: Optional[str] = None
    national_id: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None

    # Employment / assets
    occupation: Optional[str] = None
    salary: Optional[str] = None
    months_at_employer: Optional[str] = None
    property_status: Optional[str] = None
    has_vehicle: Optional[bool] = None
    has_deed: Optional[bool] = None

    # Legal
    has_open_enforcement: Optional[bool] = None
    has_closed_enforcement: Optional[bool] = None
    enforcement_detail: Optional[str] = None
    has_lawsuit: Optional[bool] = None
    lawsuit_detail: Optional[str] = None

    # Pipeline
    status: Optional[str] = None
    owner_email: Optional[str] = None
    claimed_at: Optional[datetime] = None
    last_call_at: Optional[datetime] = None
    next_call_at: Optional[datetime] = None
    call_note: Optional[str] = None
    description: Optional[str] = None
    application_channel: Optional[str] = None
    requested_product: Optional[str] = None
    requested_amount: Optional[float] = None
    cancellation_reason: Optional[str] = None

    # Guarantor
    guarantor_full_name: Optional[str] = None
    guarantor_phone: Optional[str] = None
    guarantor_national_id: Optional[str] = None
    guarantor_occupation: Optional[str] = None
    guarantor_salary: Optional[str] = None
    guarantor_notes: Optional[str] = None

    # Approval workflow
    approval_status: Optional[str] = None
    credit_limit: Optional[str] = None
    admin_note: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None

    # Delivery
    product_serial_no: Optional[str] = None
    product_imei: Optional[str] = None
    delivered_at: Optional[datetime] = None
    delivered_by: Optional[str] = None
    sold_items: List[SoldItem] = Field(default_factory=list)

    # Collection / delinquency
    collection_class: Optional[str] = None
    collection_status: Optional[str] = None
    payment_promise_date: Optional[date] = None

    @field_validator("payment_promise_date", mode="before")
    @classmethod
    def parse_promise_date(cls, v: Any) -> Any:
        """Accept timestamps and blanks from older rows"""
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v

    @field_validator("sold_items", mode="before")
    @classmethod
    def parse_sold_items(cls, v: Any) -> Any:
        """Older rows store the sold item list as a JSON string"""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("sold_items is not valid JSON")
        return v

    @property
    def is_owned(self) -> bool:
        return bool((self.owner_email or "").strip())

    @property
    def status_value(self) -> str:
        """Status with None and whitespace collapsed to an empty string"""
        return (self.status or "").strip()

    def display_name(self) -> str:
        return (self.full_name or "").strip() or "(Unnamed Lead)"
