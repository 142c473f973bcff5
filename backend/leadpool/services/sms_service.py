"""
SMS Service
Sends single and bulk SMS to leads with templates and audit logging.
"""
import logging
from typing import Optional, List, Dict, Any

from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import Lead
from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.domain.services.sms_template_manager import (
    get_sms_template_manager,
    SMSTemplateManager,
)
from leadpool.infrastructure.connectors.sms import SMSProvider

logger = logging.getLogger(__name__)

MAX_BULK_RECIPIENTS = 1000


class SMSNotConfiguredError(Exception):
    """Raised when SMS provider is not configured."""
    def __init__(self, message: str = "SMS provider not configured. Set NETGSM_USERCODE and NETGSM_PASSWORD."):
        self.message = message
        super().__init__(self.message)


class SMSService:
    """
    SMS sending for leads.

    - Template rendering and {placeholder} personalisation
    - Provider abstraction (NetGSM, Vonage, simulated)
    - SEND_SMS audit entry per delivered message
    """

    def __init__(
        self,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        provider: SMSProvider,
        template_manager: Optional[SMSTemplateManager] = None
    ):
        self.lead_store = lead_store
        self.audit_log = audit_log
        self._provider = provider
        self.template_manager = template_manager or get_sms_template_manager()

    def _ensure_configured(self) -> None:
        if not self._provider.is_configured():
            raise SMSNotConfiguredError()

    def compose(self, lead: Lead, message: Optional[str] = None, template_name: Optional[str] = None) -> str:
        """
        Build the text for one lead.

        Priority: explicit message, named template, template for the
        lead's current status.

        Raises:
            LeadValidationError: No message and no template applies
        """
        if message and message.strip():
            return self.template_manager.personalize(message.strip(), lead)

        template_name = template_name or self.template_manager.template_for_status(lead)
        if not template_name:
            raise LeadValidationError(
                f"No SMS template for status '{lead.status_value or '-'}'; provide a message",
                field="message",
            )
        try:
            return self.template_manager.render_for_lead(template_name, lead)
        except ValueError as e:
            raise LeadValidationError(str(e), field="template_name")

    async def _deliver(self, lead: Lead, text: str, actor: Actor) -> Dict[str, Any]:
        if not (lead.phone or "").strip():
            return {"lead_id": lead.id, "success": False, "error": "Lead has no phone number"}

        result = await self._provider.send_sms(
            to_number=lead.phone,
            message=text,
            metadata={"lead_id": lead.id}
        )
        if not result.success:
            logger.error(f"SMS to lead {lead.id} failed: {result.error}")
            return {"lead_id": lead.id, "success": False, "error": result.error}

        await self.audit_log.record(
            actor_email=actor.email,
            action=AuditAction.SEND_SMS,
            lead_id=lead.id,
            new_value=text,
            note=f"{result.provider}{' (simulated)' if result.simulated else ''}",
        )
        return {
            "lead_id": lead.id,
            "success": True,
            "message_id": result.message_id,
            "provider": result.provider,
            "simulated": result.simulated,
        }

    async def send_to_lead(
        self,
        lead: Lead,
        actor: Actor,
        message: Optional[str] = None,
        template_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send one SMS to a lead.

        Raises:
            SMSNotConfiguredError: If the provider has no credentials
            LeadValidationError: If no text can be composed
        """
        self._ensure_configured()
        text = self.compose(lead, message, template_name)
        return await self._deliver(lead, text, actor)

    async def bulk_send(self, lead_ids: List[str], message: str, actor: Actor) -> Dict[str, Any]:
        """
        Send a personalised message to many leads.

        Each lead gets its own result; missing leads and leads without a
        phone number fail individually without stopping the batch.
        """
        self._ensure_configured()
        if not (message or "").strip():
            raise LeadValidationError("Message is required", field="message")

        unique_ids = list(dict.fromkeys(lead_ids))
        if len(unique_ids) > MAX_BULK_RECIPIENTS:
            raise LeadValidationError(
                f"Too many recipients (maximum {MAX_BULK_RECIPIENTS})", field="lead_ids"
            )

        leads = {lead.id: lead for lead in await self.lead_store.get_leads_by_ids(unique_ids)}
        results: List[Dict[str, Any]] = []
        for lead_id in unique_ids:
            lead = leads.get(lead_id)
            if lead is None:
                results.append({"lead_id": lead_id, "success": False, "error": "Lead not found"})
                continue
            text = self.template_manager.personalize(message.strip(), lead)
            results.append(await self._deliver(lead, text, actor))

        sent = sum(1 for r in results if r["success"])
        logger.info(f"Bulk SMS by {actor.email}: {sent}/{len(results)} sent")
        return {
            "total": len(results),
            "sent": sent,
            "failed": len(results) - sent,
            "results": results,
        }
