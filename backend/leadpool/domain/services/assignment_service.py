"""
Lead Assignment Service
Hands the next eligible lead from the shared pool to a requesting agent.

Buckets are scanned in priority order (scheduled callbacks that are due,
new/unclassified leads, retry-eligible leads). The first non-empty bucket
wins and its best candidate is claimed with a conditional write, so two
agents can never own the same lead.
"""
import logging
from datetime import datetime
from typing import Optional, Callable

from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.assignment import (
    AssignmentPolicy,
    ClaimedLead,
    LeadBucket,
    BUCKET_PRIORITY,
)
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import Lead, LeadStatus
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.domain.services.lead_buckets import pick_candidate
from leadpool.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_ATTEMPTS = 3


class LeadAssignmentService:
    """
    Assignment of pool leads to agents.

    A lost race (the conditional update touched zero rows) is reported as
    "nothing available" rather than retried here; callers that want to
    try again use claim_next_lead_with_retries.
    """

    def __init__(
        self,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        policy: Optional[AssignmentPolicy] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lead_store = lead_store
        self.audit_log = audit_log
        self.policy = policy or AssignmentPolicy()
        self._clock = clock

    async def _select(self, now: datetime) -> Optional[tuple[LeadBucket, Lead]]:
        for bucket in BUCKET_PRIORITY:
            candidates = await self.lead_store.fetch_bucket_candidates(bucket, now, self.policy)
            logger.debug(f"Bucket {bucket.value}: {len(candidates)} candidates")
            chosen = pick_candidate(bucket, candidates, now, self.policy)
            if chosen is not None:
                return bucket, chosen
        return None

    async def lock_next_lead(self, agent_email: str) -> Optional[ClaimedLead]:
        """
        Select and atomically claim the next lead for an agent.

        Args:
            agent_email: Identity of the requesting agent

        Returns:
            ClaimedLead with the source bucket, or None when no lead is
            available (empty pool or lost race)
        """
        now = self._clock()
        selection = await self._select(now)
        if selection is None:
            logger.info(f"No lead available for {agent_email}")
            return None

        bucket, candidate = selection
        old_status = candidate.status_value
        claimed = await self.lead_store.claim_lead(
            candidate.id,
            agent_email,
            LeadStatus.TO_BE_CALLED.value,
            now,
        )
        if claimed is None:
            logger.info(f"Lead {candidate.id} was claimed by another agent before {agent_email}")
            return None

        result = ClaimedLead.build(claimed, bucket)
        await self.audit_log.record(
            actor_email=agent_email,
            action=AuditAction.PULL_LEAD,
            lead_id=claimed.id,
            old_value=old_status,
            new_value=LeadStatus.TO_BE_CALLED.value,
            note=result.source_label,
        )
        logger.info(f"Lead {claimed.id} assigned to {agent_email} from {bucket.value} bucket")
        return result

    async def claim_next_lead_with_retries(
        self,
        agent_email: str,
        attempts: int = DEFAULT_CLAIM_ATTEMPTS
    ) -> Optional[ClaimedLead]:
        """Re-invoke lock_next_lead up to `attempts` times; first claim wins."""
        for attempt in range(1, max(1, attempts) + 1):
            claimed = await self.lock_next_lead(agent_email)
            if claimed is not None:
                return claimed
            logger.debug(f"Claim attempt {attempt}/{attempts} for {agent_email} found nothing")
        return None
