"""
Collection Service
Call rotation, listing, counters and notes for customers in arrears.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from leadpool.domain.exceptions import LeadNotFoundError, LeadValidationError
from leadpool.domain.interfaces.collection_store import CollectionStore
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.collection import (
    AWAITING_ACTION,
    CollectionNote,
    CollectionPage,
    CollectionStats,
    PromiseFilter,
)
from leadpool.domain.models.lead import Lead
from leadpool.domain.services.stats_service import DEFAULT_STATS_TIMEZONE
from leadpool.utils.time_utils import utc_now, local_date

logger = logging.getLogger(__name__)

DEFAULT_RECALL_GAP_MINUTES = 120
MAX_PAGE_SIZE = 200


class CollectionService:
    """
    Delinquency workflow over overdue-class leads.

    Unlike the sales pool nothing is claimed: next_debtor only rotates
    through debtors that have not been called within the recall gap.
    Promise dates are compared against the local calendar day.
    """

    def __init__(
        self,
        collection_store: CollectionStore,
        lead_store: LeadStore,
        recall_gap_minutes: int = DEFAULT_RECALL_GAP_MINUTES,
        timezone_name: str = DEFAULT_STATS_TIMEZONE,
        clock: Callable[[], datetime] = utc_now
    ):
        self.collection_store = collection_store
        self.lead_store = lead_store
        self.recall_gap = timedelta(minutes=recall_gap_minutes)
        self.timezone_name = timezone_name
        self._clock = clock

    async def next_debtor(self, actor: Actor) -> Optional[Lead]:
        """
        Debtor to call next: never called first, then least recently called.

        Returns:
            The debtor, or None when everyone was called within the recall gap
        """
        cutoff = self._clock() - self.recall_gap
        debtors = await self.collection_store.fetch_next_debtors(cutoff, limit=1)
        if not debtors:
            logger.info(f"No debtor due for {actor.email}")
            return None
        logger.info(f"Debtor {debtors[0].id} handed to {actor.email}")
        return debtors[0]

    async def list_debtors(
        self,
        status: Optional[str] = None,
        promise: Optional[str] = None,
        page: int = 1,
        limit: int = 50
    ) -> CollectionPage:
        """
        Paginated debtor list.

        Args:
            status: Collection status; AWAITING_ACTION selects debtors with none
            promise: "today", "tomorrow" or "overdue" payment promises
            page: 1-based page number
            limit: Page size, at most MAX_PAGE_SIZE

        Raises:
            LeadValidationError: Bad paging or an unknown promise filter
        """
        if page < 1:
            raise LeadValidationError("Page must be 1 or greater", field="page")
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise LeadValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")

        collection_status = None
        if status:
            collection_status = "" if status == AWAITING_ACTION else status

        promise_on = promise_before = None
        if promise:
            try:
                promise_filter = PromiseFilter(promise)
            except ValueError:
                raise LeadValidationError(f"Unknown promise filter: {promise}", field="promise")
            today = local_date(self._clock(), self.timezone_name)
            if promise_filter == PromiseFilter.TODAY:
                promise_on = today
            elif promise_filter == PromiseFilter.TOMORROW:
                promise_on = today + timedelta(days=1)
            else:
                promise_before = today

        leads, total = await self.collection_store.list_debtors(
            collection_status=collection_status,
            promise_on=promise_on,
            promise_before=promise_before,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return CollectionPage.build(leads, page, limit, total)

    async def stats(self) -> CollectionStats:
        rows = await self.collection_store.fetch_debtor_rows()
        return self.aggregate(rows, self._clock())

    def aggregate(self, rows: List[Lead], now: datetime) -> CollectionStats:
        stats = CollectionStats()
        today = local_date(now, self.timezone_name)
        tomorrow = today + timedelta(days=1)

        for lead in rows:
            stats.total += 1
            key = (lead.collection_status or "").strip() or AWAITING_ACTION
            stats.by_status[key] = stats.by_status.get(key, 0) + 1

            promised = lead.payment_promise_date
            if promised is None:
                continue
            if promised == today:
                stats.promises.today += 1
            elif promised == tomorrow:
                stats.promises.tomorrow += 1
            elif promised < today:
                stats.promises.overdue += 1
        return stats

    async def list_notes(self, lead_id: str) -> List[CollectionNote]:
        return await self.collection_store.list_notes(lead_id)

    async def add_note(self, lead_id: str, note: str, actor: Actor) -> CollectionNote:
        """
        Append a note to a debtor's thread.

        Raises:
            LeadValidationError: Empty note
            LeadNotFoundError: Unknown lead
        """
        text = (note or "").strip()
        if not text:
            raise LeadValidationError("Note is required", field="note")
        if await self.lead_store.get_lead(lead_id) is None:
            raise LeadNotFoundError(lead_id)

        saved = await self.collection_store.add_note(
            CollectionNote(lead_id=lead_id, author_email=actor.email, note=text, created_at=self._clock())
        )
        logger.info(f"Collection note added to lead {lead_id} by {actor.email}")
        return saved
