"""
Unit Tests for SMS Service
Tests for SMSService and SMS template rendering.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import ApprovalStatus, LeadStatus
from leadpool.domain.services.sms_template_manager import (
    SMSTemplateManager,
    SMSTemplateType,
    get_sms_template_manager,
    render_placeholders,
)
from leadpool.infrastructure.connectors.sms import SMSResult
from leadpool.services.sms_service import SMSNotConfiguredError, SMSService
from tests.unit.factories import make_lead


class TestSMSTemplateManager:
    """Tests for SMSTemplateManager."""

    def test_get_template_returns_template(self):
        """Test getting a template by name."""
        manager = SMSTemplateManager()
        template = manager.get_template(SMSTemplateType.APPROVED.value)

        assert template.name == "Approved"
        assert "credit_limit" in template.required_vars

    def test_get_template_raises_for_unknown(self):
        """Test that getting unknown template raises ValueError."""
        manager = SMSTemplateManager()

        with pytest.raises(ValueError, match="Unknown SMS template"):
            manager.get_template("nonexistent_template")

    def test_render_for_lead(self):
        """Test rendering the approval message for a lead."""
        manager = SMSTemplateManager()
        lead = make_lead(full_name="Ayse Yilmaz", credit_limit="25000")

        result = manager.render_for_lead(SMSTemplateType.APPROVED.value, lead)

        assert "Ayse Yilmaz" in result
        assert "25000" in result

    def test_render_missing_variable_raises(self):
        """Approval template needs a credit limit."""
        manager = SMSTemplateManager()
        lead = make_lead(credit_limit=None)

        with pytest.raises(ValueError, match="Missing required template variables"):
            manager.render_for_lead(SMSTemplateType.APPROVED.value, lead)

    def test_personalize_keeps_unknown_placeholders(self):
        result = render_placeholders("Hi {full_name}, code {code}", {"full_name": "Ali"})
        assert result == "Hi Ali, code {code}"

    def test_template_for_status(self):
        manager = SMSTemplateManager()
        assert manager.template_for_status(make_lead(status=LeadStatus.NO_ANSWER.value)) == "unreachable"
        assert manager.template_for_status(
            make_lead(status=LeadStatus.APPLICATION_RECEIVED.value,
                      approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value)
        ) == "guarantor_requested"
        assert manager.template_for_status(make_lead(status=LeadStatus.NEW.value)) is None

    def test_list_templates(self):
        """Test listing available templates."""
        templates = SMSTemplateManager().list_templates()

        assert len(templates) == 5
        assert SMSTemplateType.CANCELLED.value in templates

    def test_get_template_info(self):
        """Test getting template metadata."""
        info = SMSTemplateManager().get_template_info(SMSTemplateType.UNREACHABLE.value)

        assert "name" in info
        assert "type" in info
        assert "required_vars" in info
        assert "preview" in info

    def test_singleton_returns_same_instance(self):
        """Test singleton helper returns same instance."""
        assert get_sms_template_manager() is get_sms_template_manager()


def make_provider(success=True, configured=True):
    provider = MagicMock()
    provider.is_configured.return_value = configured
    provider.send_sms = AsyncMock(return_value=SMSResult(
        success=success,
        message_id="job-1" if success else None,
        provider="netgsm",
        error=None if success else "NETGSM_ERROR_CODE_30",
    ))
    return provider


class TestSMSService:
    """Tests for SMSService."""

    @pytest.mark.asyncio
    async def test_send_to_lead_logs_audit(self, lead_store, audit_log, audit_store, agent):
        provider = make_provider()
        service = SMSService(lead_store, audit_log, provider)
        lead = make_lead(status=LeadStatus.NO_ANSWER.value)

        result = await service.send_to_lead(lead, agent)

        assert result["success"] is True
        assert result["message_id"] == "job-1"
        provider.send_sms.assert_awaited_once()
        assert "Ayse Yilmaz" in provider.send_sms.call_args.kwargs["message"]
        entries = await audit_store.list_for_lead(lead.id)
        assert entries[0].action == AuditAction.SEND_SMS.value

    @pytest.mark.asyncio
    async def test_explicit_message_is_personalised(self, lead_store, audit_log, agent):
        provider = make_provider()
        service = SMSService(lead_store, audit_log, provider)

        await service.send_to_lead(make_lead(), agent, message="Hello {full_name}")

        assert provider.send_sms.call_args.kwargs["message"] == "Hello Ayse Yilmaz"

    @pytest.mark.asyncio
    async def test_no_template_for_status_raises(self, lead_store, audit_log, agent):
        service = SMSService(lead_store, audit_log, make_provider())

        with pytest.raises(LeadValidationError):
            await service.send_to_lead(make_lead(status=LeadStatus.NEW.value), agent)

    @pytest.mark.asyncio
    async def test_unconfigured_provider_raises(self, lead_store, audit_log, agent):
        service = SMSService(lead_store, audit_log, make_provider(configured=False))

        with pytest.raises(SMSNotConfiguredError):
            await service.send_to_lead(make_lead(), agent, message="Hi")

    @pytest.mark.asyncio
    async def test_provider_failure_is_reported_not_logged(self, lead_store, audit_log, audit_store, agent):
        service = SMSService(lead_store, audit_log, make_provider(success=False))
        lead = make_lead()

        result = await service.send_to_lead(lead, agent, message="Hi")

        assert result["success"] is False
        assert result["error"] == "NETGSM_ERROR_CODE_30"
        assert await audit_store.list_for_lead(lead.id) == []

    @pytest.mark.asyncio
    async def test_bulk_send_reports_per_lead(self, lead_store, audit_log, admin):
        with_phone = make_lead()
        without_phone = make_lead(phone=None)
        await lead_store.insert_leads([with_phone, without_phone])
        provider = make_provider()
        service = SMSService(lead_store, audit_log, provider)

        summary = await service.bulk_send(
            [with_phone.id, without_phone.id, "missing", with_phone.id],
            "Campaign for {full_name}",
            admin,
        )

        assert summary["total"] == 3
        assert summary["sent"] == 1
        assert summary["failed"] == 2
        errors = {r["lead_id"]: r.get("error") for r in summary["results"]}
        assert errors[without_phone.id] == "Lead has no phone number"
        assert errors["missing"] == "Lead not found"
        provider.send_sms.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bulk_send_requires_message(self, lead_store, audit_log, admin):
        service = SMSService(lead_store, audit_log, make_provider())

        with pytest.raises(LeadValidationError):
            await service.bulk_send(["a"], "  ", admin)
