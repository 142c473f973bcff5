"""
Supabase Lead Store
LeadStore backed by the Supabase `leads` table (PostgREST).

Unowned rows carry a NULL owner_email; writes normalise an empty owner
to NULL so the claim filter `owner_email IS NULL` covers every pool lead.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from supabase import Client

from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.assignment import AssignmentPolicy, LeadBucket
from leadpool.domain.models.lead import Lead, LeadStatus, RETRY_STATUSES
from leadpool.domain.services.lead_buckets import retry_window
from leadpool.utils.time_utils import to_iso
from .supabase_query import (
    execute_query,
    quote_value,
    sanitize_search_term,
    chunked,
    PAGE_SIZE,
    INSERT_CHUNK_SIZE,
    IN_FILTER_CHUNK_SIZE,
)

logger = logging.getLogger(__name__)

LEADS_TABLE = "leads"

STATS_COLUMNS = (
    "id, status, owner_email, approval_status, created_at, "
    "last_call_at, next_call_at"
)


def lead_to_row(lead: Lead) -> Dict[str, Any]:
    row = lead.model_dump(mode="json")
    if not (row.get("owner_email") or "").strip():
        row["owner_email"] = None
    return row


def row_to_lead(row: Dict[str, Any]) -> Lead:
    return Lead.model_validate(row)


class SupabaseLeadStore(LeadStore):
    """Lead persistence through the Supabase client"""

    def __init__(self, client: Client):
        self.client = client

    def _table(self):
        return self.client.table(LEADS_TABLE)

    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        response = execute_query(
            self._table().select("*").eq("id", lead_id).limit(1),
            "get lead",
        )
        return row_to_lead(response.data[0]) if response.data else None

    async def fetch_bucket_candidates(
        self,
        bucket: LeadBucket,
        now: datetime,
        policy: AssignmentPolicy
    ) -> List[Lead]:
        query = self._table().select("*").is_("owner_email", "null")

        if bucket == LeadBucket.SCHEDULED:
            query = (
                query.eq("status", LeadStatus.CALL_BACK_LATER.value)
                .lte("next_call_at", to_iso(now))
                .order("next_call_at")
            )
        elif bucket == LeadBucket.NEW:
            return self._fetch_new_candidates(policy.candidate_limit)
        else:
            stale_cutoff, cooldown_cutoff = retry_window(now, policy)
            query = (
                query.in_("status", sorted(RETRY_STATUSES))
                .or_(
                    "last_call_at.is.null,"
                    f"and(last_call_at.gte.{quote_value(to_iso(stale_cutoff))},"
                    f"last_call_at.lt.{quote_value(to_iso(cooldown_cutoff))})"
                )
                .order("last_call_at", nullsfirst=True)
            )

        response = execute_query(query.limit(policy.candidate_limit), f"fetch {bucket.value} candidates")
        return [row_to_lead(row) for row in (response.data or [])]

    def _fetch_new_candidates(self, limit: int) -> List[Lead]:
        # Unclassified leads outrank "New" ones, so they are fetched first
        unclassified = execute_query(
            self._table().select("*").is_("owner_email", "null")
            .or_("status.is.null,status.eq.")
            .order("created_at", desc=True)
            .limit(limit),
            "fetch unclassified candidates",
        )
        rows = list(unclassified.data or [])
        if len(rows) < limit:
            fresh = execute_query(
                self._table().select("*").is_("owner_email", "null")
                .eq("status", LeadStatus.NEW.value)
                .order("created_at", desc=True)
                .limit(limit - len(rows)),
                "fetch new candidates",
            )
            rows.extend(fresh.data or [])
        return [row_to_lead(row) for row in rows]

    async def claim_lead(
        self,
        lead_id: str,
        agent_email: str,
        status: str,
        now: datetime
    ) -> Optional[Lead]:
        # Conditional update: zero rows back means another agent won
        response = execute_query(
            self._table().update({
                "owner_email": agent_email,
                "status": status,
                "claimed_at": to_iso(now),
                "updated_at": to_iso(now),
                "updated_by": agent_email,
            }).eq("id", lead_id).is_("owner_email", "null"),
            "claim lead",
        )
        return row_to_lead(response.data[0]) if response.data else None

    async def save_lead(self, lead: Lead, expected_owner: Optional[str]) -> Optional[Lead]:
        row = lead_to_row(lead)
        row.pop("id", None)
        query = self._table().update(row).eq("id", lead.id)
        if (expected_owner or "").strip():
            query = query.eq("owner_email", expected_owner)
        else:
            query = query.is_("owner_email", "null")
        response = execute_query(query, "save lead")
        return row_to_lead(response.data[0]) if response.data else None

    async def insert_lead(self, lead: Lead) -> Lead:
        response = execute_query(self._table().insert(lead_to_row(lead)), "insert lead")
        return row_to_lead(response.data[0]) if response.data else lead

    async def insert_leads(self, leads: List[Lead]) -> int:
        inserted = 0
        rows = [lead_to_row(lead) for lead in leads]
        # Split into chunks to stay under request size limits
        for chunk in chunked(rows, INSERT_CHUNK_SIZE):
            execute_query(self._table().insert(chunk), "bulk insert leads")
            inserted += len(chunk)
        return inserted

    async def list_leads(
        self,
        owner_email: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100
    ) -> List[Lead]:
        query = self._table().select("*")
        if owner_email:
            query = query.eq("owner_email", owner_email)
        if status is not None:
            if status == "":
                query = query.or_("status.is.null,status.eq.")
            else:
                query = query.eq("status", status)
        response = execute_query(
            query.order("created_at", desc=True).limit(limit),
            "list leads",
        )
        return [row_to_lead(row) for row in (response.data or [])]

    async def search_leads(
        self,
        query: str,
        owner_email: Optional[str] = None,
        limit: int = 50
    ) -> List[Lead]:
        term = sanitize_search_term(query)
        if not term:
            return []
        builder = self._table().select("*").or_(
            f"full_name.ilike.*{term}*,phone.ilike.*{term}*,national_id.ilike.*{term}*"
        )
        if owner_email:
            builder = builder.eq("owner_email", owner_email)
        response = execute_query(
            builder.order("created_at", desc=True).limit(limit),
            "search leads",
        )
        return [row_to_lead(row) for row in (response.data or [])]

    async def get_leads_by_ids(self, lead_ids: Iterable[str]) -> List[Lead]:
        leads: List[Lead] = []
        for chunk in chunked(list(lead_ids), IN_FILTER_CHUNK_SIZE):
            response = execute_query(self._table().select("*").in_("id", chunk), "get leads by id")
            leads.extend(row_to_lead(row) for row in (response.data or []))
        return leads

    async def fetch_stats_rows(self) -> List[Lead]:
        rows: List[Dict[str, Any]] = []
        start = 0
        while True:
            response = execute_query(
                self._table().select(STATS_COLUMNS).order("id").range(start, start + PAGE_SIZE - 1),
                "fetch stats rows",
            )
            page = response.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        return [row_to_lead(row) for row in rows]

    async def existing_phones(self, phones: Iterable[str]) -> Set[str]:
        found: Set[str] = set()
        for chunk in chunked(list(phones), IN_FILTER_CHUNK_SIZE):
            response = execute_query(self._table().select("phone").in_("phone", chunk), "check phones")
            found.update(row["phone"] for row in (response.data or []) if row.get("phone"))
        return found
