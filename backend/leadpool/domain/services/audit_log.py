"""
Audit Log Service
Append-only action history per lead
"""
import logging
from typing import Optional, List, Any

from leadpool.domain.interfaces.audit_store import AuditStore
from leadpool.domain.models.audit import AuditAction, AuditLogEntry

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 200
MAX_LOG_LIMIT = 1000


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "value"):
        value = value.value
    return str(value)


class AuditLogService:
    """
    Records and reads audit entries.

    Entries are written once; there is no update or delete path.
    """

    def __init__(self, store: AuditStore):
        self.store = store

    async def record(
        self,
        actor_email: str,
        action: AuditAction,
        lead_id: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        note: Optional[str] = None
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            actor_email=actor_email,
            lead_id=lead_id,
            action=action.value if isinstance(action, AuditAction) else str(action),
            old_value=_as_text(old_value),
            new_value=_as_text(new_value),
            note=note,
        )
        saved = await self.store.append(entry)
        logger.debug(f"Audit {entry.action} on lead {lead_id} by {actor_email}")
        return saved

    async def for_lead(self, lead_id: str, limit: int = DEFAULT_LOG_LIMIT) -> List[AuditLogEntry]:
        return await self.store.list_for_lead(lead_id, limit=self._clamp(limit))

    async def recent(self, limit: int = DEFAULT_LOG_LIMIT) -> List[AuditLogEntry]:
        return await self.store.list_recent(limit=self._clamp(limit))

    @staticmethod
    def _clamp(limit: int) -> int:
        return max(1, min(int(limit), MAX_LOG_LIMIT))
