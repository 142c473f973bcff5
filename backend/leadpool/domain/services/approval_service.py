"""
Approval Workflow
Admin decisions on submitted credit applications
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from leadpool.domain.exceptions import LeadConflictError, LeadNotFoundError, LeadValidationError
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import Lead, LeadStatus, ApprovalStatus
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

PENDING_APPROVAL_VALUES = (None, "", ApprovalStatus.PENDING.value)


class ApprovalService:
    """
    Approve, reject or ask for a guarantor.

    Callers are expected to have checked the admin role (see require_admin).
    Each decision stamps the deciding admin and logs UPDATE_STATUS. A lead
    that changed owner while the decision was being made is left untouched
    and LeadConflictError is raised.
    """

    def __init__(
        self,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lead_store = lead_store
        self.audit_log = audit_log
        self._clock = clock

    async def list_pending(self, limit: int = 200) -> List[Lead]:
        """Applications received that have no decision yet"""
        leads = await self.lead_store.list_leads(
            status=LeadStatus.APPLICATION_RECEIVED.value, limit=limit
        )
        return [lead for lead in leads if lead.approval_status in PENDING_APPROVAL_VALUES]

    async def _load(self, lead_id: str) -> Lead:
        lead = await self.lead_store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        return lead

    async def _decide(
        self,
        lead_id: str,
        admin: Actor,
        status: str,
        approval_status: str,
        note: Optional[str],
        credit_limit: Optional[str] = None,
        log_note: Optional[str] = None
    ) -> Lead:
        lead = await self._load(lead_id)
        owner = lead.owner_email
        old_status = lead.status_value
        now = self._clock()

        lead.status = status
        lead.approval_status = approval_status
        lead.admin_note = note or ""
        lead.approved_at = now
        lead.approved_by = admin.email
        if credit_limit is not None:
            lead.credit_limit = credit_limit
        lead.updated_at = now
        lead.updated_by = admin.email

        saved = await self.lead_store.save_lead(lead, expected_owner=owner)
        if saved is None:
            raise LeadConflictError()
        await self.audit_log.record(
            actor_email=admin.email,
            action=AuditAction.UPDATE_STATUS,
            lead_id=saved.id,
            old_value=old_status,
            new_value=status,
            note=log_note if log_note is not None else note,
        )
        logger.info(f"Lead {lead_id}: {approval_status} by {admin.email}")
        return saved

    async def approve(self, lead_id: str, admin: Actor, credit_limit: str, note: Optional[str] = None) -> Lead:
        if not (credit_limit or "").strip():
            raise LeadValidationError("Credit limit is required to approve", field="credit_limit")
        return await self._decide(
            lead_id,
            admin,
            status=LeadStatus.APPROVED.value,
            approval_status=ApprovalStatus.APPROVED.value,
            note=note,
            credit_limit=credit_limit.strip(),
            log_note=f"Approved with limit: {credit_limit.strip()}",
        )

    async def reject(self, lead_id: str, admin: Actor, reason: Optional[str] = None) -> Lead:
        return await self._decide(
            lead_id,
            admin,
            status=LeadStatus.REJECTED.value,
            approval_status=ApprovalStatus.REJECTED.value,
            note=reason,
        )

    async def request_guarantor(self, lead_id: str, admin: Actor, reason: Optional[str] = None) -> Lead:
        return await self._decide(
            lead_id,
            admin,
            status=LeadStatus.AWAITING_GUARANTOR.value,
            approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value,
            note=reason,
        )
