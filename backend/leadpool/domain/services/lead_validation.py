"""
Lead Validation
Field format checks and status-specific required companions.

Every check raises LeadValidationError with a message that can be shown
to the agent as-is; nothing is written when validation fails.
"""
import re
from typing import Optional

from pydantic_core import PydanticCustomError
from pydantic.networks import validate_email

from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.models.lead import (
    Lead,
    LeadStatus,
    ApprovalStatus,
    CANCELLATION_STATUSES,
    DELIVERED_STATUSES,
    APPLICATION_STATUSES,
)

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15
NATIONAL_ID_LENGTH = 11
DEFAULT_COUNTRY_CODE = "90"


def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to E.164.

    Domestic formats default to the Turkish country code:
        0532 123 45 67  -> +905321234567
        532 123 45 67   -> +905321234567
        +90 532 123 4567 -> +905321234567

    Raises:
        ValueError: If the number is empty or not 10-15 digits long
    """
    if not phone or not phone.strip():
        raise ValueError("Phone number is empty")

    has_plus = phone.strip().startswith("+")
    cleaned = re.sub(r"[^\d]", "", phone)

    if not cleaned:
        raise ValueError("Phone number contains no digits")
    if len(cleaned) < MIN_PHONE_DIGITS:
        raise ValueError(f"Phone number too short (minimum {MIN_PHONE_DIGITS} digits)")
    if len(cleaned) > MAX_PHONE_DIGITS:
        raise ValueError(f"Phone number too long (maximum {MAX_PHONE_DIGITS} digits)")

    if has_plus:
        return f"+{cleaned}"
    # Trunk prefix: 0 + 10-digit national number
    if len(cleaned) == 11 and cleaned.startswith("0"):
        return f"+{DEFAULT_COUNTRY_CODE}{cleaned[1:]}"
    if len(cleaned) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{cleaned}"
    return f"+{cleaned}"


def is_valid_national_id(value: Optional[str]) -> bool:
    """
    Check an 11-digit national identity number.

    The 10th digit is ((sum of odd positions 1-9) * 7 - (sum of even
    positions 2-8)) mod 10; the 11th is the sum of the first ten mod 10.
    """
    if not value:
        return False
    value = value.strip()
    if len(value) != NATIONAL_ID_LENGTH or not value.isdigit() or value[0] == "0":
        return False

    digits = [int(c) for c in value]
    odd_sum = sum(digits[0:9:2])
    even_sum = sum(digits[1:8:2])
    if (odd_sum * 7 - even_sum) % 10 != digits[9]:
        return False
    return sum(digits[:10]) % 10 == digits[10]


def is_valid_email(value: str) -> bool:
    try:
        validate_email(value)
    except PydanticCustomError:
        return False
    return True


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def validate_lead(lead: Lead, previous_status: Optional[str] = None, is_new: bool = False) -> None:
    """
    Validate a full lead record before it is persisted.

    Args:
        lead: The record as it would be saved
        previous_status: Stored status before this edit
        is_new: True for intake; status companions are then always checked

    Raises:
        LeadValidationError: On the first failing rule
    """
    if _blank(lead.full_name):
        raise LeadValidationError("Full name is required", field="full_name")
    if _blank(lead.phone):
        raise LeadValidationError("Phone number is required", field="phone")
    try:
        normalize_phone(lead.phone)
    except ValueError as e:
        raise LeadValidationError(f"Invalid phone number: {e}", field="phone")

    status = lead.status_value
    entering = is_new or status != (previous_status or "").strip()

    if _blank(lead.national_id):
        if status in APPLICATION_STATUSES:
            raise LeadValidationError(
                f"National id is required for status '{status}'", field="national_id"
            )
    elif not is_valid_national_id(lead.national_id):
        raise LeadValidationError("National id must be a valid 11-digit number", field="national_id")

    if not _blank(lead.email) and not is_valid_email(lead.email.strip()):
        raise LeadValidationError("Email address is not valid", field="email")

    if status == LeadStatus.CALL_BACK_LATER.value and lead.next_call_at is None:
        raise LeadValidationError(
            f"Next call time is required for status '{status}'", field="next_call_at"
        )

    if entering and status in CANCELLATION_STATUSES and _blank(lead.cancellation_reason):
        raise LeadValidationError(
            f"A cancellation reason is required for status '{status}'", field="cancellation_reason"
        )

    if entering and status in DELIVERED_STATUSES:
        has_device = not _blank(lead.product_serial_no) and not _blank(lead.product_imei)
        if not has_device and not lead.sold_items:
            raise LeadValidationError(
                "Delivery requires a sold item or the product serial number and IMEI",
                field="product_imei",
            )

    if (
        lead.approval_status == ApprovalStatus.GUARANTOR_REQUESTED.value
        and status == LeadStatus.APPLICATION_RECEIVED.value
    ):
        if _blank(lead.guarantor_full_name) or _blank(lead.guarantor_phone) or _blank(lead.guarantor_national_id):
            raise LeadValidationError(
                "Guarantor name, phone and national id are required to resubmit the application",
                field="guarantor_national_id",
            )
        if not is_valid_national_id(lead.guarantor_national_id):
            raise LeadValidationError(
                "Guarantor national id must be a valid 11-digit number",
                field="guarantor_national_id",
            )
