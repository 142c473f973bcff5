"""
Supabase Collection Store
Debtor queries on `leads` plus the `collection_notes` table
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client

from leadpool.domain.interfaces.collection_store import CollectionStore
from leadpool.domain.models.collection import CollectionNote, OVERDUE_CLASS
from leadpool.domain.models.lead import Lead
from leadpool.utils.time_utils import to_iso
from .supabase_lead_store import LEADS_TABLE, row_to_lead
from .supabase_query import execute_query, quote_value, PAGE_SIZE

NOTES_TABLE = "collection_notes"

DEBTOR_STATS_COLUMNS = "id, collection_class, collection_status, payment_promise_date"


class SupabaseCollectionStore(CollectionStore):

    def __init__(self, client: Client):
        self.client = client

    def _debtors(self, columns: str = "*", count: Optional[str] = None):
        return (
            self.client.table(LEADS_TABLE)
            .select(columns, count=count)
            .eq("collection_class", OVERDUE_CLASS)
        )

    async def fetch_next_debtors(self, called_before: datetime, limit: int = 1) -> List[Lead]:
        response = execute_query(
            self._debtors()
            .or_(f"last_call_at.is.null,last_call_at.lt.{quote_value(to_iso(called_before))}")
            .order("last_call_at", nullsfirst=True)
            .order("id")
            .limit(limit),
            "fetch next debtor",
        )
        return [row_to_lead(row) for row in (response.data or [])]

    async def list_debtors(
        self,
        collection_status: Optional[str] = None,
        promise_on: Optional[date] = None,
        promise_before: Optional[date] = None,
        offset: int = 0,
        limit: int = 50
    ) -> Tuple[List[Lead], int]:
        query = self._debtors(count="exact")
        if collection_status is not None:
            if collection_status == "":
                query = query.or_("collection_status.is.null,collection_status.eq.")
            else:
                query = query.eq("collection_status", collection_status)
        if promise_on is not None:
            query = query.eq("payment_promise_date", promise_on.isoformat())
        if promise_before is not None:
            query = query.lt("payment_promise_date", promise_before.isoformat())
        response = execute_query(
            query.order("last_call_at", nullsfirst=True)
            .order("id")
            .range(offset, offset + limit - 1),
            "list debtors",
        )
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return [row_to_lead(row) for row in rows], total

    async def fetch_debtor_rows(self) -> List[Lead]:
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            response = execute_query(
                self._debtors(DEBTOR_STATS_COLUMNS).order("id").range(start, start + PAGE_SIZE - 1),
                "fetch debtor rows",
            )
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        return [row_to_lead(row) for row in rows]

    async def list_notes(self, lead_id: str) -> List[CollectionNote]:
        response = execute_query(
            self.client.table(NOTES_TABLE).select("*")
            .eq("lead_id", lead_id)
            .order("created_at"),
            "list collection notes",
        )
        return [CollectionNote.model_validate(row) for row in (response.data or [])]

    async def add_note(self, note: CollectionNote) -> CollectionNote:
        execute_query(
            self.client.table(NOTES_TABLE).insert(note.model_dump(mode="json")),
            "add collection note",
        )
        return note
