"""
Lead Stats Aggregator
Dashboard counters derived from the same bucket predicates the
assignment service uses.
"""
import logging
from datetime import datetime
from typing import Dict, Optional, Callable, List

from pydantic import BaseModel, Field

from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.assignment import AssignmentPolicy, LeadBucket
from leadpool.domain.models.lead import Lead, LeadStatus, ApprovalStatus, DELIVERED_STATUSES
from leadpool.domain.services.lead_buckets import classify_bucket
from leadpool.utils.time_utils import utc_now, local_date

logger = logging.getLogger(__name__)

DEFAULT_STATS_TIMEZONE = "Europe/Istanbul"
UNCLASSIFIED_STATUS_KEY = "(empty)"


class LeadStats(BaseModel):
    """Counters returned to the dashboard"""
    scope: str  # "all" for admins, "own" for agents
    # Pool availability (unowned leads, shared by every agent)
    scheduled_available: int = 0
    new_available: int = 0
    retry_available: int = 0
    total_available: int = 0
    # Scoped counters
    total_leads: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)
    pending_approval: int = 0
    awaiting_guarantor: int = 0
    approved: int = 0
    delivered: int = 0
    scheduled_total: int = 0
    called_today: int = 0


class LeadStatsAggregator:
    """
    Read-only aggregation over the lead store.

    Bucket counts cover the shared unowned pool so every agent sees what
    pulling would hand out; all other counters are limited to the caller's
    own leads unless the caller is an admin.
    """

    def __init__(
        self,
        lead_store: LeadStore,
        policy: Optional[AssignmentPolicy] = None,
        timezone_name: str = DEFAULT_STATS_TIMEZONE,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lead_store = lead_store
        self.policy = policy or AssignmentPolicy()
        self.timezone_name = timezone_name
        self._clock = clock

    async def compute(self, actor: Actor) -> LeadStats:
        now = self._clock()
        rows = await self.lead_store.fetch_stats_rows()
        stats = self.aggregate(rows, actor, now)
        logger.debug(
            f"Stats for {actor.email} ({stats.scope}): "
            f"{stats.total_available} available, {stats.total_leads} in scope"
        )
        return stats

    def aggregate(self, rows: List[Lead], actor: Actor, now: datetime) -> LeadStats:
        """Pure aggregation step, separated for direct testing"""
        stats = LeadStats(scope="all" if actor.is_admin else "own")
        today = local_date(now, self.timezone_name)

        for lead in rows:
            bucket = classify_bucket(lead, now, self.policy)
            if bucket == LeadBucket.SCHEDULED:
                stats.scheduled_available += 1
            elif bucket == LeadBucket.NEW:
                stats.new_available += 1
            elif bucket == LeadBucket.RETRY:
                stats.retry_available += 1

            if not actor.is_admin and lead.owner_email != actor.email:
                continue

            stats.total_leads += 1
            status = lead.status_value
            key = status or UNCLASSIFIED_STATUS_KEY
            stats.status_counts[key] = stats.status_counts.get(key, 0) + 1

            if status == LeadStatus.APPLICATION_RECEIVED.value and (
                lead.approval_status in (None, "", ApprovalStatus.PENDING.value)
            ):
                stats.pending_approval += 1
            if status == LeadStatus.AWAITING_GUARANTOR.value:
                stats.awaiting_guarantor += 1
            if status == LeadStatus.APPROVED.value:
                stats.approved += 1
            if status in DELIVERED_STATUSES:
                stats.delivered += 1
            if status == LeadStatus.CALL_BACK_LATER.value:
                stats.scheduled_total += 1
            if lead.last_call_at is not None and local_date(lead.last_call_at, self.timezone_name) == today:
                stats.called_today += 1

        stats.total_available = (
            stats.scheduled_available + stats.new_available + stats.retry_available
        )
        return stats
