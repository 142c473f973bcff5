"""
Unit Tests for Lead Assignment Service
Bucket priority, atomic claims and audit logging on the SQL store.
"""
import asyncio
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from leadpool.domain.models.assignment import AssignmentPolicy, LeadBucket
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import LeadStatus
from leadpool.domain.services.assignment_service import LeadAssignmentService
from leadpool.infrastructure.storage.sql_stores import SqlLeadStore
from tests.unit.factories import NOW, make_lead


@pytest.fixture
def service(lead_store, audit_log, clock):
    return LeadAssignmentService(lead_store, audit_log, AssignmentPolicy(), clock=clock)


class GatedLeadStore(SqlLeadStore):
    """Holds each puller after selection until every puller has selected"""

    def __init__(self, session_factory, pullers: int):
        super().__init__(session_factory)
        self.pullers = pullers
        self.selected = []
        self._all_selected = asyncio.Event()

    async def fetch_bucket_candidates(self, bucket, now, policy):
        candidates = await super().fetch_bucket_candidates(bucket, now, policy)
        if candidates:
            self.selected.append(candidates[0].id)
            if len(self.selected) == self.pullers:
                self._all_selected.set()
            await self._all_selected.wait()
        return candidates


class TestLockNextLead:
    """Selection order across buckets"""

    @pytest.mark.asyncio
    async def test_empty_pool_returns_none(self, service):
        assert await service.lock_next_lead("agent@example.com") is None

    @pytest.mark.asyncio
    async def test_due_callback_beats_unclassified_lead(self, service, lead_store):
        unclassified = make_lead(status=None)
        due = make_lead(status=LeadStatus.CALL_BACK_LATER.value, next_call_at=NOW - timedelta(minutes=1))
        await lead_store.insert_leads([unclassified, due])

        claimed = await service.lock_next_lead("agent@example.com")

        assert claimed.lead.id == due.id
        assert claimed.source_bucket == LeadBucket.SCHEDULED.value
        assert claimed.source_label == "Scheduled Callback"

    @pytest.mark.asyncio
    async def test_new_lead_beats_retry_candidate(self, service, lead_store):
        retry = make_lead(status=LeadStatus.NO_ANSWER.value, last_call_at=NOW - timedelta(hours=2))
        new = make_lead(status=LeadStatus.NEW.value)
        await lead_store.insert_leads([retry, new])

        claimed = await service.lock_next_lead("agent@example.com")

        assert claimed.lead.id == new.id
        assert claimed.source_bucket == LeadBucket.NEW.value

    @pytest.mark.asyncio
    async def test_unclassified_lead_beyond_candidate_limit_wins(self, lead_store, audit_log, clock):
        unclassified = make_lead(status="", created_at=NOW - timedelta(days=5))
        await lead_store.insert_leads([
            unclassified,
            *[make_lead(status=LeadStatus.NEW.value, created_at=NOW - timedelta(hours=h)) for h in (1, 2, 3)],
        ])
        service = LeadAssignmentService(lead_store, audit_log, AssignmentPolicy(candidate_limit=2), clock=clock)

        claimed = await service.lock_next_lead("agent@example.com")

        assert claimed.lead.id == unclassified.id

    @pytest.mark.asyncio
    async def test_retry_candidate_when_nothing_else(self, service, lead_store):
        cooling = make_lead(status=LeadStatus.NO_ANSWER.value, last_call_at=NOW - timedelta(minutes=5))
        ready = make_lead(status=LeadStatus.UNREACHABLE.value, last_call_at=NOW - timedelta(hours=3))
        await lead_store.insert_leads([cooling, ready])

        claimed = await service.lock_next_lead("agent@example.com")

        assert claimed.lead.id == ready.id
        assert claimed.source_label == "Retry Call"

    @pytest.mark.asyncio
    async def test_owned_and_future_leads_are_not_handed_out(self, service, lead_store):
        await lead_store.insert_leads([
            make_lead(status=LeadStatus.NEW.value, owner_email="other@example.com"),
            make_lead(status=LeadStatus.CALL_BACK_LATER.value, next_call_at=NOW + timedelta(hours=1)),
            make_lead(status=LeadStatus.BUSY.value, last_call_at=NOW - timedelta(days=3)),
        ])

        assert await service.lock_next_lead("agent@example.com") is None

    @pytest.mark.asyncio
    async def test_claim_sets_owner_status_and_timestamp(self, service, lead_store):
        lead = make_lead(status=None)
        await lead_store.insert_lead(lead)

        claimed = await service.lock_next_lead("agent@example.com")
        stored = await lead_store.get_lead(lead.id)

        assert claimed.lead.owner_email == "agent@example.com"
        assert stored.owner_email == "agent@example.com"
        assert stored.status == LeadStatus.TO_BE_CALLED.value
        assert stored.claimed_at == NOW

    @pytest.mark.asyncio
    async def test_claim_writes_pull_audit_entry(self, service, lead_store, audit_store):
        lead = make_lead(status=LeadStatus.NEW.value)
        await lead_store.insert_lead(lead)

        await service.lock_next_lead("agent@example.com")
        entries = await audit_store.list_for_lead(lead.id)

        assert len(entries) == 1
        assert entries[0].action == AuditAction.PULL_LEAD.value
        assert entries[0].actor_email == "agent@example.com"
        assert entries[0].old_value == LeadStatus.NEW.value
        assert entries[0].new_value == LeadStatus.TO_BE_CALLED.value
        assert entries[0].note == "New Lead"

    @pytest.mark.asyncio
    async def test_claimed_lead_is_not_handed_out_again(self, service, lead_store):
        await lead_store.insert_lead(make_lead(status=LeadStatus.NEW.value))

        first = await service.lock_next_lead("agent@example.com")
        second = await service.lock_next_lead("other@example.com")

        assert first is not None
        assert second is None


class TestClaimContention:
    """Two agents racing for the same lead"""

    @pytest.mark.asyncio
    async def test_store_claim_succeeds_only_once(self, lead_store):
        lead = make_lead(status=LeadStatus.NEW.value)
        await lead_store.insert_lead(lead)

        first = await lead_store.claim_lead(lead.id, "agent@example.com", LeadStatus.TO_BE_CALLED.value, NOW)
        second = await lead_store.claim_lead(lead.id, "other@example.com", LeadStatus.TO_BE_CALLED.value, NOW)

        assert first.owner_email == "agent@example.com"
        assert second is None
        assert (await lead_store.get_lead(lead.id)).owner_email == "agent@example.com"

    @pytest.mark.asyncio
    async def test_concurrent_pulls_exactly_one_wins(self, session_factory, audit_log, clock):
        store = GatedLeadStore(session_factory, pullers=2)
        lead = make_lead(status=LeadStatus.NEW.value)
        await store.insert_lead(lead)
        service = LeadAssignmentService(store, audit_log, AssignmentPolicy(), clock=clock)

        results = await asyncio.wait_for(
            asyncio.gather(
                service.lock_next_lead("agent@example.com"),
                service.lock_next_lead("other@example.com"),
            ),
            timeout=5,
        )

        # Both pullers selected the same lead before either claimed it
        assert store.selected == [lead.id, lead.id]
        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        stored = await store.get_lead(lead.id)
        assert stored.owner_email == winners[0].lead.owner_email
        entries = await audit_log.for_lead(lead.id)
        assert [e.action for e in entries] == [AuditAction.PULL_LEAD.value]

    @pytest.mark.asyncio
    async def test_lost_race_returns_none_without_audit(self, lead_store, audit_log, clock):
        lead = make_lead(status=LeadStatus.NEW.value)
        await lead_store.insert_lead(lead)
        stale_view = await lead_store.get_lead(lead.id)
        await lead_store.claim_lead(lead.id, "other@example.com", LeadStatus.TO_BE_CALLED.value, NOW)

        # Selection still sees the lead as unowned; the conditional write must fail
        lead_store.fetch_bucket_candidates = AsyncMock(return_value=[stale_view])
        audit_log.record = AsyncMock()
        service = LeadAssignmentService(lead_store, audit_log, clock=clock)

        assert await service.lock_next_lead("agent@example.com") is None
        audit_log.record.assert_not_called()
        assert (await lead_store.get_lead(lead.id)).owner_email == "other@example.com"


class TestClaimWithRetries:
    """Bounded caller loop"""

    @pytest.mark.asyncio
    async def test_retries_until_a_claim_succeeds(self, service):
        claimed = object()
        service.lock_next_lead = AsyncMock(side_effect=[None, claimed])

        result = await service.claim_next_lead_with_retries("agent@example.com", attempts=3)

        assert result is claimed
        assert service.lock_next_lead.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, service):
        service.lock_next_lead = AsyncMock(return_value=None)

        result = await service.claim_next_lead_with_retries("agent@example.com", attempts=3)

        assert result is None
        assert service.lock_next_lead.await_count == 3
