"""
SQL Stores
LeadStore / AuditStore / InventoryStore / CollectionStore over SQLAlchemy sessions.

Used with a direct PostgreSQL connection (DATABASE_URL) and with SQLite
in tests. Datetimes are written as UTC; naive values read back are UTC.
Sessions are synchronous, so every query runs in the threadpool.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.orm import sessionmaker

from leadpool.domain.interfaces.audit_store import AuditStore
from leadpool.domain.interfaces.collection_store import CollectionStore
from leadpool.domain.interfaces.inventory_store import InventoryStore
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.assignment import AssignmentPolicy, LeadBucket
from leadpool.domain.models.audit import AuditLogEntry
from leadpool.domain.models.collection import CollectionNote, OVERDUE_CLASS
from leadpool.domain.models.inventory import InventoryItem, InventoryStatus
from leadpool.domain.models.lead import Lead, LeadStatus, RETRY_STATUSES
from leadpool.domain.services.lead_buckets import retry_window
from leadpool.utils.time_utils import to_utc
from .database import session_scope
from .models import AuditLogRecord, CollectionNoteRecord, InventoryRecord, LeadRecord

logger = logging.getLogger(__name__)


def _columns(record_cls) -> List[str]:
    return [column.name for column in record_cls.__table__.columns]


def _record_values(record, record_cls) -> Dict[str, Any]:
    values = {}
    for name in _columns(record_cls):
        value = getattr(record, name)
        values[name] = to_utc(value) if isinstance(value, datetime) else value
    return values


def _utc_values(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: to_utc(v) if isinstance(v, datetime) else v for k, v in data.items()}


def lead_from_record(record: LeadRecord) -> Lead:
    return Lead.model_validate(_record_values(record, LeadRecord))


def lead_to_values(lead: Lead) -> Dict[str, Any]:
    values = _utc_values(lead.model_dump(exclude={"sold_items"}))
    values["sold_items"] = [item.model_dump(mode="json") for item in lead.sold_items]
    if not (values.get("owner_email") or "").strip():
        values["owner_email"] = None
    return values


def _unowned():
    return or_(LeadRecord.owner_email.is_(None), LeadRecord.owner_email == "")


def _owned_by(owner_email: Optional[str]):
    if (owner_email or "").strip():
        return LeadRecord.owner_email == owner_email
    return _unowned()


def _unclassified():
    return or_(LeadRecord.status.is_(None), LeadRecord.status == "")


class SqlLeadStore(LeadStore):
    """LeadStore on a SQLAlchemy session factory"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get_lead(self, lead_id: str) -> Optional[Lead]:
        return await run_in_threadpool(self._get_lead, lead_id)

    def _get_lead(self, lead_id: str) -> Optional[Lead]:
        with session_scope(self.session_factory) as db:
            record = db.get(LeadRecord, lead_id)
            return lead_from_record(record) if record else None

    async def fetch_bucket_candidates(
        self,
        bucket: LeadBucket,
        now: datetime,
        policy: AssignmentPolicy
    ) -> List[Lead]:
        return await run_in_threadpool(self._fetch_bucket_candidates, bucket, now, policy)

    def _fetch_bucket_candidates(
        self,
        bucket: LeadBucket,
        now: datetime,
        policy: AssignmentPolicy
    ) -> List[Lead]:
        now = to_utc(now)
        query = select(LeadRecord).where(_unowned())

        if bucket == LeadBucket.SCHEDULED:
            query = query.where(
                LeadRecord.status == LeadStatus.CALL_BACK_LATER.value,
                LeadRecord.next_call_at.is_not(None),
                LeadRecord.next_call_at <= now,
            ).order_by(LeadRecord.next_call_at.asc())
        elif bucket == LeadBucket.NEW:
            # Unclassified rows rank ahead of "New" before the limit is applied
            query = query.where(
                or_(_unclassified(), LeadRecord.status == LeadStatus.NEW.value)
            ).order_by(
                case((_unclassified(), 0), else_=1),
                LeadRecord.created_at.desc().nulls_last(),
            )
        else:
            stale_cutoff, cooldown_cutoff = retry_window(now, policy)
            query = query.where(
                LeadRecord.status.in_(sorted(RETRY_STATUSES)),
                or_(
                    LeadRecord.last_call_at.is_(None),
                    and_(
                        LeadRecord.last_call_at >= stale_cutoff,
                        LeadRecord.last_call_at < cooldown_cutoff,
                    ),
                ),
            ).order_by(LeadRecord.last_call_at.asc().nulls_first())

        with session_scope(self.session_factory) as db:
            records = db.execute(query.limit(policy.candidate_limit)).scalars().all()
            return [lead_from_record(record) for record in records]

    async def claim_lead(
        self,
        lead_id: str,
        agent_email: str,
        status: str,
        now: datetime
    ) -> Optional[Lead]:
        return await run_in_threadpool(self._claim_lead, lead_id, agent_email, status, now)

    def _claim_lead(self, lead_id: str, agent_email: str, status: str, now: datetime) -> Optional[Lead]:
        now = to_utc(now)
        with session_scope(self.session_factory) as db:
            result = db.execute(
                update(LeadRecord)
                .where(LeadRecord.id == lead_id, _unowned())
                .values(
                    owner_email=agent_email,
                    status=status,
                    claimed_at=now,
                    updated_at=now,
                    updated_by=agent_email,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            record = db.get(LeadRecord, lead_id, populate_existing=True)
            return lead_from_record(record)

    async def save_lead(self, lead: Lead, expected_owner: Optional[str]) -> Optional[Lead]:
        return await run_in_threadpool(self._save_lead, lead, expected_owner)

    def _save_lead(self, lead: Lead, expected_owner: Optional[str]) -> Optional[Lead]:
        values = lead_to_values(lead)
        values.pop("id")
        with session_scope(self.session_factory) as db:
            result = db.execute(
                update(LeadRecord)
                .where(LeadRecord.id == lead.id, _owned_by(expected_owner))
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            record = db.get(LeadRecord, lead.id, populate_existing=True)
            return lead_from_record(record)

    async def insert_lead(self, lead: Lead) -> Lead:
        return await run_in_threadpool(self._insert_lead, lead)

    def _insert_lead(self, lead: Lead) -> Lead:
        with session_scope(self.session_factory) as db:
            record = LeadRecord(**lead_to_values(lead))
            db.add(record)
            db.flush()
            return lead_from_record(record)

    async def insert_leads(self, leads: List[Lead]) -> int:
        return await run_in_threadpool(self._insert_leads, leads)

    def _insert_leads(self, leads: List[Lead]) -> int:
        with session_scope(self.session_factory) as db:
            db.add_all([LeadRecord(**lead_to_values(lead)) for lead in leads])
        return len(leads)

    async def list_leads(
        self,
        owner_email: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100
    ) -> List[Lead]:
        query = select(LeadRecord)
        if owner_email:
            query = query.where(LeadRecord.owner_email == owner_email)
        if status is not None:
            if status == "":
                query = query.where(_unclassified())
            else:
                query = query.where(LeadRecord.status == status)
        query = query.order_by(LeadRecord.created_at.desc().nulls_last()).limit(limit)
        return await run_in_threadpool(self._all_leads, query)

    async def search_leads(
        self,
        query: str,
        owner_email: Optional[str] = None,
        limit: int = 50
    ) -> List[Lead]:
        term = (query or "").strip()
        if not term:
            return []
        pattern = f"%{term}%"
        statement = select(LeadRecord).where(
            or_(
                LeadRecord.full_name.ilike(pattern),
                LeadRecord.phone.ilike(pattern),
                LeadRecord.national_id.ilike(pattern),
            )
        )
        if owner_email:
            statement = statement.where(LeadRecord.owner_email == owner_email)
        statement = statement.order_by(LeadRecord.created_at.desc().nulls_last()).limit(limit)
        return await run_in_threadpool(self._all_leads, statement)

    async def get_leads_by_ids(self, lead_ids: Iterable[str]) -> List[Lead]:
        ids = list(lead_ids)
        if not ids:
            return []
        return await run_in_threadpool(self._all_leads, select(LeadRecord).where(LeadRecord.id.in_(ids)))

    async def fetch_stats_rows(self) -> List[Lead]:
        return await run_in_threadpool(self._all_leads, select(LeadRecord))

    def _all_leads(self, statement) -> List[Lead]:
        with session_scope(self.session_factory) as db:
            return [lead_from_record(r) for r in db.execute(statement).scalars().all()]

    async def existing_phones(self, phones: Iterable[str]) -> Set[str]:
        values = list(phones)
        if not values:
            return set()
        return await run_in_threadpool(self._existing_phones, values)

    def _existing_phones(self, values: List[str]) -> Set[str]:
        with session_scope(self.session_factory) as db:
            rows = db.execute(select(LeadRecord.phone).where(LeadRecord.phone.in_(values))).scalars().all()
            return {phone for phone in rows if phone}


class SqlAuditStore(AuditStore):
    """Insert-only access to activity_logs"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        return await run_in_threadpool(self._append, entry)

    def _append(self, entry: AuditLogEntry) -> AuditLogEntry:
        with session_scope(self.session_factory) as db:
            db.add(AuditLogRecord(**_utc_values(entry.model_dump())))
        return entry

    async def list_for_lead(self, lead_id: str, limit: int = 200) -> List[AuditLogEntry]:
        query = (
            select(AuditLogRecord)
            .where(AuditLogRecord.lead_id == lead_id)
            .order_by(AuditLogRecord.created_at.desc())
            .limit(limit)
        )
        return await run_in_threadpool(self._entries, query)

    async def list_recent(self, limit: int = 200) -> List[AuditLogEntry]:
        query = select(AuditLogRecord).order_by(AuditLogRecord.created_at.desc()).limit(limit)
        return await run_in_threadpool(self._entries, query)

    def _entries(self, query) -> List[AuditLogEntry]:
        with session_scope(self.session_factory) as db:
            return [
                AuditLogEntry.model_validate(_record_values(r, AuditLogRecord))
                for r in db.execute(query).scalars().all()
            ]


class SqlInventoryStore(InventoryStore):

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_item(record: InventoryRecord) -> InventoryItem:
        return InventoryItem.model_validate(_record_values(record, InventoryRecord))

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        return await run_in_threadpool(self._get_item, item_id)

    def _get_item(self, item_id: str) -> Optional[InventoryItem]:
        with session_scope(self.session_factory) as db:
            record = db.get(InventoryRecord, item_id)
            return self._to_item(record) if record else None

    async def list_items(self, status: Optional[str] = None, limit: int = 500) -> List[InventoryItem]:
        query = select(InventoryRecord)
        if status:
            query = query.where(InventoryRecord.status == status)
        query = query.order_by(InventoryRecord.entered_at.desc().nulls_last()).limit(limit)
        return await run_in_threadpool(self._list_items, query)

    def _list_items(self, query) -> List[InventoryItem]:
        with session_scope(self.session_factory) as db:
            return [self._to_item(r) for r in db.execute(query).scalars().all()]

    async def insert_item(self, item: InventoryItem) -> InventoryItem:
        return await run_in_threadpool(self._insert_item, item)

    def _insert_item(self, item: InventoryItem) -> InventoryItem:
        with session_scope(self.session_factory) as db:
            record = InventoryRecord(**_utc_values(item.model_dump()))
            db.add(record)
            db.flush()
            return self._to_item(record)

    async def save_item(self, item: InventoryItem) -> InventoryItem:
        return await run_in_threadpool(self._save_item, item)

    def _save_item(self, item: InventoryItem) -> InventoryItem:
        values = _utc_values(item.model_dump())
        values.pop("id")
        with session_scope(self.session_factory) as db:
            db.execute(
                update(InventoryRecord)
                .where(InventoryRecord.id == item.id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            record = db.get(InventoryRecord, item.id, populate_existing=True)
            return self._to_item(record) if record else item

    async def mark_sold(self, item_id: str, lead_id: str, exited_at: datetime) -> Optional[InventoryItem]:
        return await run_in_threadpool(
            self._conditional_update,
            item_id,
            [InventoryRecord.status == InventoryStatus.IN_STOCK.value],
            {"status": InventoryStatus.SOLD.value, "exited_at": to_utc(exited_at), "customer_id": lead_id},
        )

    async def return_to_stock(self, item_id: str, lead_id: str) -> Optional[InventoryItem]:
        return await run_in_threadpool(
            self._conditional_update,
            item_id,
            [
                InventoryRecord.status == InventoryStatus.SOLD.value,
                InventoryRecord.customer_id == lead_id,
            ],
            {"status": InventoryStatus.IN_STOCK.value, "exited_at": None, "customer_id": None},
        )

    def _conditional_update(self, item_id: str, conditions: List[Any], values: Dict[str, Any]) -> Optional[InventoryItem]:
        with session_scope(self.session_factory) as db:
            result = db.execute(
                update(InventoryRecord)
                .where(InventoryRecord.id == item_id, *conditions)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            record = db.get(InventoryRecord, item_id, populate_existing=True)
            return self._to_item(record)


class SqlCollectionStore(CollectionStore):
    """Debtor queries on the leads table plus collection_notes"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _debtors():
        return select(LeadRecord).where(LeadRecord.collection_class == OVERDUE_CLASS)

    async def fetch_next_debtors(self, called_before: datetime, limit: int = 1) -> List[Lead]:
        query = (
            self._debtors()
            .where(
                or_(
                    LeadRecord.last_call_at.is_(None),
                    LeadRecord.last_call_at < to_utc(called_before),
                )
            )
            .order_by(LeadRecord.last_call_at.asc().nulls_first(), LeadRecord.id)
            .limit(limit)
        )
        return await run_in_threadpool(self._leads, query)

    async def list_debtors(
        self,
        collection_status: Optional[str] = None,
        promise_on: Optional[date] = None,
        promise_before: Optional[date] = None,
        offset: int = 0,
        limit: int = 50
    ) -> Tuple[List[Lead], int]:
        conditions = [LeadRecord.collection_class == OVERDUE_CLASS]
        if collection_status is not None:
            if collection_status == "":
                conditions.append(
                    or_(LeadRecord.collection_status.is_(None), LeadRecord.collection_status == "")
                )
            else:
                conditions.append(LeadRecord.collection_status == collection_status)
        if promise_on is not None:
            conditions.append(LeadRecord.payment_promise_date == promise_on)
        if promise_before is not None:
            conditions.append(LeadRecord.payment_promise_date < promise_before)
        return await run_in_threadpool(self._page, conditions, offset, limit)

    def _page(self, conditions: List[Any], offset: int, limit: int) -> Tuple[List[Lead], int]:
        page_query = (
            select(LeadRecord)
            .where(*conditions)
            .order_by(LeadRecord.last_call_at.asc().nulls_first(), LeadRecord.id)
            .offset(offset)
            .limit(limit)
        )
        count_query = select(func.count()).select_from(LeadRecord).where(*conditions)
        with session_scope(self.session_factory) as db:
            total = db.execute(count_query).scalar_one()
            leads = [lead_from_record(r) for r in db.execute(page_query).scalars().all()]
            return leads, total

    async def fetch_debtor_rows(self) -> List[Lead]:
        return await run_in_threadpool(self._leads, self._debtors())

    def _leads(self, query) -> List[Lead]:
        with session_scope(self.session_factory) as db:
            return [lead_from_record(r) for r in db.execute(query).scalars().all()]

    async def list_notes(self, lead_id: str) -> List[CollectionNote]:
        return await run_in_threadpool(self._list_notes, lead_id)

    def _list_notes(self, lead_id: str) -> List[CollectionNote]:
        query = (
            select(CollectionNoteRecord)
            .where(CollectionNoteRecord.lead_id == lead_id)
            .order_by(CollectionNoteRecord.created_at.asc())
        )
        with session_scope(self.session_factory) as db:
            return [
                CollectionNote.model_validate(_record_values(r, CollectionNoteRecord))
                for r in db.execute(query).scalars().all()
            ]

    async def add_note(self, note: CollectionNote) -> CollectionNote:
        return await run_in_threadpool(self._add_note, note)

    def _add_note(self, note: CollectionNote) -> CollectionNote:
        with session_scope(self.session_factory) as db:
            db.add(CollectionNoteRecord(**_utc_values(note.model_dump())))
        return note
