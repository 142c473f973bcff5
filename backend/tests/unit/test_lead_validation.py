"""
Unit Tests for Lead Validation
Phone normalisation, national id checksum and status companion rules.
"""
import pytest
from datetime import timedelta

from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.models.lead import ApprovalStatus, LeadStatus, SoldItem
from leadpool.domain.services.lead_validation import (
    is_valid_email,
    is_valid_national_id,
    normalize_phone,
    validate_lead,
)
from tests.unit.factories import GUARANTOR_NATIONAL_ID, NOW, VALID_NATIONAL_ID, make_lead


class TestNormalizePhone:
    """Phone number normalisation to E.164"""

    @pytest.mark.parametrize("raw", [
        "0532 123 45 67",
        "532 123 45 67",
        "+90 532 123 4567",
        "(0532) 123-45-67",
    ])
    def test_domestic_formats(self, raw):
        assert normalize_phone(raw) == "+905321234567"

    def test_international_number_kept(self):
        assert normalize_phone("+44 20 7946 0958") == "+442079460958"

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            normalize_phone("  ")

    def test_too_short_raises(self):
        with pytest.raises(ValueError, match="too short"):
            normalize_phone("12345")

    def test_too_long_raises(self):
        with pytest.raises(ValueError, match="too long"):
            normalize_phone("+1234567890123456")


class TestNationalId:
    """11-digit checksum"""

    def test_valid_ids(self):
        assert is_valid_national_id(VALID_NATIONAL_ID)
        assert is_valid_national_id(GUARANTOR_NATIONAL_ID)

    @pytest.mark.parametrize("value", [
        None,
        "",
        "1000000014",      # too short
        "00000000146",     # leading zero
        "10000000147",     # bad last digit
        "10000000156",     # bad tenth digit
        "1000000014a",
    ])
    def test_invalid_ids(self, value):
        assert not is_valid_national_id(value)


class TestEmail:

    def test_valid_email(self):
        assert is_valid_email("ayse@example.com")

    def test_invalid_email(self):
        assert not is_valid_email("not-an-email")


class TestValidateLead:
    """Record-level rules"""

    def test_minimal_lead_passes(self):
        validate_lead(make_lead(status=LeadStatus.NEW.value))

    def test_name_required(self):
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(make_lead(full_name="  "))
        assert exc.value.field == "full_name"

    def test_phone_required(self):
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(make_lead(phone=None))
        assert exc.value.field == "phone"

    def test_invalid_phone_rejected(self):
        with pytest.raises(LeadValidationError, match="Invalid phone"):
            validate_lead(make_lead(phone="123"))

    def test_invalid_national_id_rejected(self):
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(make_lead(national_id="12345678901"))
        assert exc.value.field == "national_id"

    def test_application_status_requires_national_id(self):
        lead = make_lead(status=LeadStatus.APPLICATION_RECEIVED.value)
        with pytest.raises(LeadValidationError, match="National id is required"):
            validate_lead(lead, previous_status=LeadStatus.TO_BE_CALLED.value)

    def test_invalid_email_rejected(self):
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(make_lead(email="ayse@"))
        assert exc.value.field == "email"

    def test_call_back_later_requires_next_call(self):
        lead = make_lead(status=LeadStatus.CALL_BACK_LATER.value, next_call_at=None)
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(lead, previous_status=LeadStatus.TO_BE_CALLED.value)
        assert exc.value.field == "next_call_at"

    def test_call_back_later_with_next_call_passes(self):
        lead = make_lead(status=LeadStatus.CALL_BACK_LATER.value, next_call_at=NOW + timedelta(hours=1))
        validate_lead(lead, previous_status=LeadStatus.TO_BE_CALLED.value)

    @pytest.mark.parametrize("status", [LeadStatus.CANCELLED.value, LeadStatus.NOT_ELIGIBLE.value])
    def test_cancellation_requires_reason(self, status):
        lead = make_lead(status=status)
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(lead, previous_status=LeadStatus.TO_BE_CALLED.value)
        assert exc.value.field == "cancellation_reason"

    def test_cancellation_with_reason_passes(self):
        lead = make_lead(status=LeadStatus.CANCELLED.value, cancellation_reason="Changed mind")
        validate_lead(lead, previous_status=LeadStatus.TO_BE_CALLED.value)

    def test_cancellation_reason_only_checked_on_entry(self):
        lead = make_lead(status=LeadStatus.CANCELLED.value, call_note="edited later")
        validate_lead(lead, previous_status=LeadStatus.CANCELLED.value)

    def test_delivery_requires_device(self):
        lead = make_lead(status=LeadStatus.DELIVERED.value, national_id=VALID_NATIONAL_ID)
        with pytest.raises(LeadValidationError, match="Delivery requires"):
            validate_lead(lead, previous_status=LeadStatus.APPROVED.value)

    def test_delivery_with_serial_and_imei_passes(self):
        lead = make_lead(
            status=LeadStatus.DELIVERED.value,
            national_id=VALID_NATIONAL_ID,
            product_serial_no="SN-1",
            product_imei="356938035643809",
        )
        validate_lead(lead, previous_status=LeadStatus.APPROVED.value)

    def test_delivery_with_sold_item_passes(self):
        lead = make_lead(
            status=LeadStatus.SALE_COMPLETED.value,
            national_id=VALID_NATIONAL_ID,
            sold_items=[SoldItem(imei="356938035643809", brand="Acme", model="X1")],
        )
        validate_lead(lead, previous_status=LeadStatus.APPROVED.value)

    def test_guarantor_resubmission_requires_guarantor(self):
        lead = make_lead(
            status=LeadStatus.APPLICATION_RECEIVED.value,
            approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value,
            national_id=VALID_NATIONAL_ID,
        )
        with pytest.raises(LeadValidationError) as exc:
            validate_lead(lead, previous_status=LeadStatus.AWAITING_GUARANTOR.value)
        assert exc.value.field == "guarantor_national_id"

    def test_guarantor_resubmission_with_guarantor_passes(self):
        lead = make_lead(
            status=LeadStatus.APPLICATION_RECEIVED.value,
            approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value,
            national_id=VALID_NATIONAL_ID,
            guarantor_full_name="Mehmet Yilmaz",
            guarantor_phone="05321112233",
            guarantor_national_id=GUARANTOR_NATIONAL_ID,
        )
        validate_lead(lead, previous_status=LeadStatus.AWAITING_GUARANTOR.value)

    def test_guarantor_national_id_checksum(self):
        lead = make_lead(
            status=LeadStatus.APPLICATION_RECEIVED.value,
            approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value,
            national_id=VALID_NATIONAL_ID,
            guarantor_full_name="Mehmet Yilmaz",
            guarantor_phone="05321112233",
            guarantor_national_id="11111111111",
        )
        with pytest.raises(LeadValidationError, match="Guarantor national id"):
            validate_lead(lead, previous_status=LeadStatus.AWAITING_GUARANTOR.value)
