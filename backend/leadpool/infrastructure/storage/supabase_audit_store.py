"""
Supabase Audit Store
Append-only `activity_logs` table
"""
from typing import List

from supabase import Client

from leadpool.domain.interfaces.audit_store import AuditStore
from leadpool.domain.models.audit import AuditLogEntry
from .supabase_query import execute_query

AUDIT_TABLE = "activity_logs"


class SupabaseAuditStore(AuditStore):

    def __init__(self, client: Client):
        self.client = client

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        execute_query(
            self.client.table(AUDIT_TABLE).insert(entry.model_dump(mode="json")),
            "append audit entry",
        )
        return entry

    async def list_for_lead(self, lead_id: str, limit: int = 200) -> List[AuditLogEntry]:
        response = execute_query(
            self.client.table(AUDIT_TABLE).select("*")
            .eq("lead_id", lead_id)
            .order("created_at", desc=True)
            .limit(limit),
            "list lead audit entries",
        )
        return [AuditLogEntry.model_validate(row) for row in (response.data or [])]

    async def list_recent(self, limit: int = 200) -> List[AuditLogEntry]:
        response = execute_query(
            self.client.table(AUDIT_TABLE).select("*")
            .order("created_at", desc=True)
            .limit(limit),
            "list audit entries",
        )
        return [AuditLogEntry.model_validate(row) for row in (response.data or [])]
