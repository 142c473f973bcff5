"""
Lead Bucket Predicates
Single source of truth for bucket eligibility and ordering.

The assignment service, the stats aggregator and every store backend
classify leads through these functions (stores translate the same
cutoffs into query filters).
"""
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

from leadpool.domain.models.lead import Lead, LeadStatus, RETRY_STATUSES
from leadpool.domain.models.assignment import LeadBucket, AssignmentPolicy, BUCKET_PRIORITY
from leadpool.utils.time_utils import to_utc


NEW_STATUS_VALUES = ("", LeadStatus.NEW.value)


def is_unowned(lead: Lead) -> bool:
    return not lead.is_owned


def retry_window(now: datetime, policy: AssignmentPolicy) -> Tuple[datetime, datetime]:
    """
    Bounds for last_call_at of a retry candidate.

    Returns:
        (stale_cutoff, cooldown_cutoff): eligible when
        stale_cutoff <= last_call_at < cooldown_cutoff
    """
    now = to_utc(now)
    stale_cutoff = now - timedelta(seconds=policy.retry_staleness_seconds)
    cooldown_cutoff = now - timedelta(seconds=policy.retry_cooldown_seconds)
    return stale_cutoff, cooldown_cutoff


def is_scheduled_due(lead: Lead, now: datetime) -> bool:
    """Call Back Later with a next-call time that has elapsed"""
    if lead.status_value != LeadStatus.CALL_BACK_LATER.value:
        return False
    if lead.next_call_at is None:
        return False
    return to_utc(lead.next_call_at) <= to_utc(now)


def is_new_or_unclassified(lead: Lead) -> bool:
    return lead.status_value in NEW_STATUS_VALUES


def is_retry_eligible(lead: Lead, now: datetime, policy: AssignmentPolicy) -> bool:
    if lead.status_value not in RETRY_STATUSES:
        return False
    if lead.last_call_at is None:
        return True
    stale_cutoff, cooldown_cutoff = retry_window(now, policy)
    last_call = to_utc(lead.last_call_at)
    return stale_cutoff <= last_call < cooldown_cutoff


def matches_bucket(lead: Lead, bucket: LeadBucket, now: datetime, policy: AssignmentPolicy) -> bool:
    """Bucket predicate including the unowned requirement"""
    if not is_unowned(lead):
        return False
    if bucket == LeadBucket.SCHEDULED:
        return is_scheduled_due(lead, now)
    if bucket == LeadBucket.NEW:
        return is_new_or_unclassified(lead)
    if bucket == LeadBucket.RETRY:
        return is_retry_eligible(lead, now, policy)
    return False


def classify_bucket(lead: Lead, now: datetime, policy: AssignmentPolicy) -> Optional[LeadBucket]:
    """Highest-priority bucket the lead is eligible for, or None"""
    for bucket in BUCKET_PRIORITY:
        if matches_bucket(lead, bucket, now, policy):
            return bucket
    return None


def _timestamp(value: Optional[datetime]) -> float:
    return to_utc(value).timestamp() if value is not None else 0.0


def bucket_sort_key(bucket: LeadBucket, lead: Lead) -> tuple:
    """
    Tie-break ordering within a bucket (ascending sort, first wins).

    scheduled: earliest next_call_at
    new: empty status before New, then most recently created (undated last)
    retry: never-called first, then oldest last_call_at
    """
    if bucket == LeadBucket.SCHEDULED:
        return (_timestamp(lead.next_call_at), lead.id)
    if bucket == LeadBucket.NEW:
        status_rank = 0 if lead.status_value == "" else 1
        undated = lead.created_at is None
        return (status_rank, undated, -_timestamp(lead.created_at), lead.id)
    called = lead.last_call_at is not None
    return (called, _timestamp(lead.last_call_at), lead.id)


def order_candidates(bucket: LeadBucket, leads: List[Lead]) -> List[Lead]:
    return sorted(leads, key=lambda lead: bucket_sort_key(bucket, lead))


def pick_candidate(
    bucket: LeadBucket,
    candidates: List[Lead],
    now: datetime,
    policy: AssignmentPolicy
) -> Optional[Lead]:
    """
    Pick the best candidate of a bucket.

    Candidates are re-checked against the predicate since store filters
    may be coarser (e.g. PostgREST cannot express "status is empty or null"
    and a time window in one query).
    """
    eligible = [lead for lead in candidates if matches_bucket(lead, bucket, now, policy)]
    if not eligible:
        return None
    return order_candidates(bucket, eligible)[0]
