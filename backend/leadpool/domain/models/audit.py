"""
Audit Log Models
Append-only action history per lead
"""
import uuid
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from leadpool.utils.time_utils import utc_now


class AuditAction(str, Enum):
    """Kinds of actions recorded against a lead"""
    PULL_LEAD = "PULL_LEAD"
    CREATED = "CREATED"
    UPDATE_STATUS = "UPDATE_STATUS"
    UPDATE_FIELDS = "UPDATE_FIELDS"
    SET_NEXT_CALL = "SET_NEXT_CALL"
    SEND_SMS = "SEND_SMS"
    SEND_WHATSAPP = "SEND_WHATSAPP"
    CALL_CLICK = "CALL_CLICK"
    CUSTOM_ACTION = "CUSTOM_ACTION"


class AuditLogEntry(BaseModel):
    """
    Immutable record of a single action.

    Entries are frozen once built; the store exposes no update or delete path.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=utc_now)
    actor_email: str
    lead_id: Optional[str] = None
    action: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    note: Optional[str] = None

    model_config = {"frozen": True}
