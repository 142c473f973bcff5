"""
Collection Store Interface
Queries over delinquent customers and their collection notes
"""
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Optional, Tuple

from leadpool.domain.models.collection import CollectionNote
from leadpool.domain.models.lead import Lead


class CollectionStore(ABC):
    """
    Read access to overdue-class leads plus the append-only note thread.

    Every lead query is restricted to Lead.collection_class == OVERDUE_CLASS.
    """

    @abstractmethod
    async def fetch_next_debtors(self, called_before: datetime, limit: int = 1) -> List[Lead]:
        """
        Debtors never called or last called before `called_before`.

        Returns:
            At most `limit` leads, never-called first, then least recently called
        """
        pass

    @abstractmethod
    async def list_debtors(
        self,
        collection_status: Optional[str] = None,
        promise_on: Optional[date] = None,
        promise_before: Optional[date] = None,
        offset: int = 0,
        limit: int = 50
    ) -> Tuple[List[Lead], int]:
        """
        One page of debtors, least recently called first.

        Args:
            collection_status: Exact status; "" matches an empty or missing status
            promise_on: Only payment promises on this date
            promise_before: Only payment promises before this date

        Returns:
            (page of leads, total matching rows)
        """
        pass

    @abstractmethod
    async def fetch_debtor_rows(self) -> List[Lead]:
        """All debtors with the fields the collection stats read"""
        pass

    @abstractmethod
    async def list_notes(self, lead_id: str) -> List[CollectionNote]:
        """Notes for one debtor, oldest first"""
        pass

    @abstractmethod
    async def add_note(self, note: CollectionNote) -> CollectionNote:
        pass
