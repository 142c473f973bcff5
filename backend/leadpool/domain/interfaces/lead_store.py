"""
Lead Store Interface
Abstract base class for lead persistence backends
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Set, Iterable

from leadpool.domain.models.lead import Lead
from leadpool.domain.models.assignment import LeadBucket, AssignmentPolicy


class LeadStore(ABC):
    """
    Abstract base class for lead stores.

    Implementations must make claim_lead a single conditional write:
    the owner is set only if the row is still unowned at write time.
    """

    @abstractmethod
    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        """Fetch one lead by id, or None"""
        pass

    @abstractmethod
    async def fetch_bucket_candidates(
        self,
        bucket: LeadBucket,
        now: datetime,
        policy: AssignmentPolicy
    ) -> List[Lead]:
        """
        Fetch unowned leads matching a bucket's predicate.

        Args:
            bucket: Bucket to scan
            now: Reference time for due / retry-window checks
            policy: Thresholds and candidate limit

        Returns:
            At most policy.candidate_limit leads. The limit must be applied
            after the bucket's tie-break ordering (for the new bucket:
            unclassified before "New", then newest first), so the best
            candidate is never cut off.
        """
        pass

    @abstractmethod
    async def claim_lead(
        self,
        lead_id: str,
        agent_email: str,
        status: str,
        now: datetime
    ) -> Optional[Lead]:
        """
        Conditionally assign a lead to an agent.

        Returns:
            The updated lead, or None when another agent got there first
        """
        pass

    @abstractmethod
    async def save_lead(self, lead: Lead, expected_owner: Optional[str]) -> Optional[Lead]:
        """
        Persist the full record of an existing lead.

        The write only applies while the stored owner still equals
        `expected_owner` (None meaning unowned), so a claim made after the
        record was read is never overwritten.

        Returns:
            The saved lead, or None when the owner changed in the meantime
        """
        pass

    @abstractmethod
    async def insert_lead(self, lead: Lead) -> Lead:
        """Insert a new lead"""
        pass

    @abstractmethod
    async def insert_leads(self, leads: List[Lead]) -> int:
        """Bulk insert; returns the number of rows written"""
        pass

    @abstractmethod
    async def list_leads(
        self,
        owner_email: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100
    ) -> List[Lead]:
        """List leads, newest first, optionally filtered by owner and status"""
        pass

    @abstractmethod
    async def search_leads(
        self,
        query: str,
        owner_email: Optional[str] = None,
        limit: int = 50
    ) -> List[Lead]:
        """Case-insensitive match on name, phone or national id"""
        pass

    @abstractmethod
    async def get_leads_by_ids(self, lead_ids: Iterable[str]) -> List[Lead]:
        pass

    @abstractmethod
    async def fetch_stats_rows(self) -> List[Lead]:
        """All leads with the fields the stats aggregator reads"""
        pass

    @abstractmethod
    async def existing_phones(self, phones: Iterable[str]) -> Set[str]:
        """Subset of the given phone numbers already present"""
        pass
