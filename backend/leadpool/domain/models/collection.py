"""
Collection Models
Follow-up calls to customers who are behind on installments
"""
import math
import uuid
from pydantic import BaseModel, Field
from typing import Dict, List
from datetime import datetime
from enum import Enum

from leadpool.domain.models.lead import Lead
from leadpool.utils.time_utils import utc_now

# Value of Lead.collection_class for customers in arrears
OVERDUE_CLASS = "Overdue"

# Reported for debtors whose collection_status is still empty
AWAITING_ACTION = "Awaiting Action"


class PromiseFilter(str, Enum):
    """Payment-promise date relative to the local calendar day"""
    TODAY = "today"
    TOMORROW = "tomorrow"
    OVERDUE = "overdue"


class CollectionNote(BaseModel):
    """Free-text note left on a debtor by a collection agent"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    lead_id: str
    author_email: str
    note: str
    created_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class CollectionPage(BaseModel):
    leads: List[Lead] = Field(default_factory=list)
    page: int = 1
    limit: int = 50
    total: int = 0
    total_pages: int = 0

    @classmethod
    def build(cls, leads: List[Lead], page: int, limit: int, total: int) -> "CollectionPage":
        return cls(
            leads=leads,
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class PromiseCounts(BaseModel):
    today: int = 0
    tomorrow: int = 0
    overdue: int = 0


class CollectionStats(BaseModel):
    """Counters for the collection dashboard"""
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    promises: PromiseCounts = Field(default_factory=PromiseCounts)
