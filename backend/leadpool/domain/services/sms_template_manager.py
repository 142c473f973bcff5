"""
SMS Template Manager
Status notification templates and placeholder personalisation for lead SMS.
"""
import logging
import re
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
from enum import Enum

from leadpool.domain.models.lead import Lead, LeadStatus, ApprovalStatus

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")


class SMSTemplateType(str, Enum):
    """Types of SMS templates available."""
    UNREACHABLE = "unreachable"
    GUARANTOR_REQUESTED = "guarantor_requested"
    APPROVED = "approved"
    MISSING_DOCUMENTS = "missing_documents"
    CANCELLED = "cancelled"


@dataclass
class SMSTemplate:
    """SMS template with content and metadata."""
    name: str
    template_type: SMSTemplateType
    content: str
    description: str
    required_vars: List[str]
    max_length: int = 160  # Single SMS limit

    def render(self, **kwargs) -> str:
        """
        Render the template with provided variables.

        Raises:
            ValueError: If required variables are missing
        """
        missing = [var for var in self.required_vars if not kwargs.get(var)]
        if missing:
            raise ValueError(f"Missing required template variables: {missing}")

        rendered = render_placeholders(self.content, kwargs)
        if len(rendered) > self.max_length:
            logger.warning(
                f"SMS template '{self.name}' rendered to {len(rendered)} chars "
                f"(exceeds {self.max_length})"
            )
        return rendered


def render_placeholders(text: str, variables: Dict[str, Any]) -> str:
    """
    Replace {name} placeholders that have a value; unknown ones stay as typed.
    """
    def _replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def lead_variables(lead: Lead) -> Dict[str, Any]:
    """Placeholder values available for a lead"""
    return {
        "full_name": (lead.full_name or "").strip() or None,
        "phone": lead.phone,
        "credit_limit": lead.credit_limit,
    }


SMS_TEMPLATES: Dict[str, SMSTemplate] = {
    SMSTemplateType.UNREACHABLE.value: SMSTemplate(
        name="Unreachable",
        template_type=SMSTemplateType.UNREACHABLE,
        content="Dear {full_name}, we tried to reach you about your installment application. Please call us back at your convenience.",
        description="Sent after an unanswered call",
        required_vars=["full_name"],
        max_length=160
    ),
    SMSTemplateType.GUARANTOR_REQUESTED.value: SMSTemplate(
        name="Guarantor Requested",
        template_type=SMSTemplateType.GUARANTOR_REQUESTED,
        content="Dear {full_name}, a guarantor is required to complete your application. Please contact us to share guarantor details.",
        description="Sent when the admin asks for a guarantor",
        required_vars=["full_name"],
        max_length=160
    ),
    SMSTemplateType.APPROVED.value: SMSTemplate(
        name="Approved",
        template_type=SMSTemplateType.APPROVED,
        content="Congratulations {full_name}! Your application is approved with a limit of {credit_limit} TL. Visit our store to pick up your device.",
        description="Sent when the application is approved",
        required_vars=["full_name", "credit_limit"],
        max_length=160
    ),
    SMSTemplateType.MISSING_DOCUMENTS.value: SMSTemplate(
        name="Missing Documents",
        template_type=SMSTemplateType.MISSING_DOCUMENTS,
        content="Dear {full_name}, some documents are missing from your application. Please send them so we can continue.",
        description="Sent when documents are missing",
        required_vars=["full_name"],
        max_length=160
    ),
    SMSTemplateType.CANCELLED.value: SMSTemplate(
        name="Cancelled",
        template_type=SMSTemplateType.CANCELLED,
        content="Dear {full_name}, your application has been closed. You can reach us any time for a new application.",
        description="Sent when the application is cancelled",
        required_vars=["full_name"],
        max_length=160
    ),
}

# Lead status (or approval status) -> template
STATUS_TEMPLATES: Dict[str, str] = {
    LeadStatus.UNREACHABLE.value: SMSTemplateType.UNREACHABLE.value,
    LeadStatus.NO_ANSWER.value: SMSTemplateType.UNREACHABLE.value,
    LeadStatus.AWAITING_GUARANTOR.value: SMSTemplateType.GUARANTOR_REQUESTED.value,
    ApprovalStatus.GUARANTOR_REQUESTED.value: SMSTemplateType.GUARANTOR_REQUESTED.value,
    LeadStatus.APPROVED.value: SMSTemplateType.APPROVED.value,
    LeadStatus.MISSING_DOCUMENTS.value: SMSTemplateType.MISSING_DOCUMENTS.value,
    LeadStatus.CANCELLED.value: SMSTemplateType.CANCELLED.value,
}


class SMSTemplateManager:
    """Template lookup and rendering for lead messages"""

    def __init__(self, custom_templates: Optional[Dict[str, SMSTemplate]] = None):
        self._templates = {**SMS_TEMPLATES}

        if custom_templates:
            self._templates.update(custom_templates)

    def get_template(self, template_name: str) -> SMSTemplate:
        """
        Get a template by name.

        Raises:
            ValueError: If template not found
        """
        if template_name not in self._templates:
            available = ", ".join(self._templates.keys())
            raise ValueError(f"Unknown SMS template: {template_name}. Available: {available}")

        return self._templates[template_name]

    def render_template(self, template_name: str, **kwargs) -> str:
        template = self.get_template(template_name)
        return template.render(**kwargs)

    def render_for_lead(self, template_name: str, lead: Lead) -> str:
        return self.render_template(template_name, **lead_variables(lead))

    def personalize(self, message: str, lead: Lead) -> str:
        """Fill {full_name} / {phone} / {credit_limit} in a free-text message"""
        return render_placeholders(message, lead_variables(lead))

    def template_for_status(self, lead: Lead) -> Optional[str]:
        """Template matching the lead's status, then its approval status"""
        return STATUS_TEMPLATES.get(lead.status_value) or STATUS_TEMPLATES.get(lead.approval_status or "")

    def list_templates(self) -> List[str]:
        return list(self._templates.keys())

    def get_template_info(self, template_name: str) -> Dict[str, Any]:
        template = self.get_template(template_name)
        return {
            "name": template.name,
            "type": template.template_type.value,
            "description": template.description,
            "required_vars": template.required_vars,
            "max_length": template.max_length,
            "preview": template.content
        }


# Singleton instance
_sms_template_manager: Optional[SMSTemplateManager] = None


def get_sms_template_manager() -> SMSTemplateManager:
    """Get or create SMSTemplateManager singleton."""
    global _sms_template_manager
    if _sms_template_manager is None:
        _sms_template_manager = SMSTemplateManager()
    return _sms_template_manager
