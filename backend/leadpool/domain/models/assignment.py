"""
Assignment Models
Priority buckets and thresholds used when handing out the next lead
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum

from leadpool.domain.models.lead import Lead


class LeadBucket(str, Enum):
    """Eligibility bucket a pool lead falls into"""
    SCHEDULED = "scheduled"
    NEW = "new"
    RETRY = "retry"


# Claim order: first non-empty bucket wins
BUCKET_PRIORITY: List[LeadBucket] = [
    LeadBucket.SCHEDULED,
    LeadBucket.NEW,
    LeadBucket.RETRY,
]

BUCKET_LABELS: Dict[str, str] = {
    LeadBucket.SCHEDULED.value: "Scheduled Callback",
    LeadBucket.NEW.value: "New Lead",
    LeadBucket.RETRY.value: "Retry Call",
}

# Module-level defaults for the retry window
RETRY_COOLDOWN_SECONDS = 15 * 60  # 15 minutes since the last attempt
RETRY_STALENESS_SECONDS = 24 * 60 * 60  # retry candidates go cold after 24 hours
CANDIDATE_LIMIT = 100


class AssignmentPolicy(BaseModel):
    """
    Thresholds shared by the Assignment Service and the Stats Aggregator.

    A retry candidate is eligible when
    cooldown < (now - last_call_at) <= staleness, or when it was never called.
    """
    retry_cooldown_seconds: int = Field(default=RETRY_COOLDOWN_SECONDS, ge=0)
    retry_staleness_seconds: int = Field(default=RETRY_STALENESS_SECONDS, gt=0)
    candidate_limit: int = Field(default=CANDIDATE_LIMIT, ge=1, le=1000)

    @classmethod
    def from_config(cls, config: Any) -> "AssignmentPolicy":
        """Build from a ConfigManager ("assignment.*" keys, minutes/hours units)."""
        cooldown_minutes = config.get("assignment.retry_cooldown_minutes", RETRY_COOLDOWN_SECONDS // 60)
        staleness_hours = config.get("assignment.retry_staleness_hours", RETRY_STALENESS_SECONDS // 3600)
        limit = config.get("assignment.candidate_limit", CANDIDATE_LIMIT)
        return cls(
            retry_cooldown_seconds=int(float(cooldown_minutes) * 60),
            retry_staleness_seconds=int(float(staleness_hours) * 3600),
            candidate_limit=int(limit),
        )


class ClaimedLead(BaseModel):
    """A lead successfully locked for an agent, labelled with its source bucket"""
    lead: Lead
    source_bucket: LeadBucket
    source_label: str

    model_config = {"use_enum_values": True}

    @classmethod
    def build(cls, lead: Lead, bucket: LeadBucket) -> "ClaimedLead":
        return cls(lead=lead, source_bucket=bucket, source_label=BUCKET_LABELS[bucket.value])


class ClaimResponse(BaseModel):
    """API payload for a pull request; lead is None when nothing is available"""
    lead: Optional[Lead] = None
    source_bucket: Optional[str] = None
    source_label: Optional[str] = None
    message: Optional[str] = None
