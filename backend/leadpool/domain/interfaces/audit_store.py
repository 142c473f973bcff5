"""
Audit Store Interface
Append-only persistence for audit log entries
"""
from abc import ABC, abstractmethod
from typing import List

from leadpool.domain.models.audit import AuditLogEntry


class AuditStore(ABC):
    """Append-only: implementations expose no update or delete"""

    @abstractmethod
    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        pass

    @abstractmethod
    async def list_for_lead(self, lead_id: str, limit: int = 200) -> List[AuditLogEntry]:
        """Entries for one lead, newest first"""
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 200) -> List[AuditLogEntry]:
        """Global feed, newest first"""
        pass
