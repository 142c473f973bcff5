"""
Unit Tests for Lead Stats Aggregator
"""
import pytest
from datetime import timedelta

from leadpool.domain.models.assignment import AssignmentPolicy
from leadpool.domain.models.lead import ApprovalStatus, LeadStatus
from leadpool.domain.services.stats_service import LeadStatsAggregator, UNCLASSIFIED_STATUS_KEY
from tests.unit.factories import NOW, make_lead


def pool_and_owned_leads():
    return [
        # Pool
        make_lead(status=LeadStatus.CALL_BACK_LATER.value, next_call_at=NOW - timedelta(minutes=10)),
        make_lead(status=None),
        make_lead(status=LeadStatus.NEW.value),
        make_lead(status=LeadStatus.NO_ANSWER.value, last_call_at=NOW - timedelta(hours=2)),
        make_lead(status=LeadStatus.NO_ANSWER.value, last_call_at=NOW - timedelta(minutes=3)),
        # Agent's own
        make_lead(
            status=LeadStatus.APPLICATION_RECEIVED.value,
            owner_email="agent@example.com",
            last_call_at=NOW - timedelta(hours=1),
        ),
        make_lead(status=LeadStatus.AWAITING_GUARANTOR.value, owner_email="agent@example.com"),
        make_lead(
            status=LeadStatus.CALL_BACK_LATER.value,
            owner_email="agent@example.com",
            next_call_at=NOW + timedelta(days=1),
        ),
        # Someone else's
        make_lead(status=LeadStatus.APPROVED.value, owner_email="other@example.com"),
        make_lead(status=LeadStatus.DELIVERED.value, owner_email="other@example.com"),
    ]


@pytest.fixture
def aggregator(lead_store, clock):
    return LeadStatsAggregator(lead_store, AssignmentPolicy(), clock=clock)


class TestAggregate:
    """Pure aggregation over a row set"""

    def test_bucket_counts_cover_the_whole_pool(self, agent, admin):
        aggregator = LeadStatsAggregator(lead_store=None)
        rows = pool_and_owned_leads()

        for actor in (agent, admin):
            stats = aggregator.aggregate(rows, actor, NOW)
            assert stats.scheduled_available == 1
            assert stats.new_available == 2
            assert stats.retry_available == 1
            assert stats.total_available == 4

    def test_agent_counters_are_scoped_to_own_leads(self, agent):
        stats = LeadStatsAggregator(lead_store=None).aggregate(pool_and_owned_leads(), agent, NOW)

        assert stats.scope == "own"
        assert stats.total_leads == 3
        assert stats.pending_approval == 1
        assert stats.awaiting_guarantor == 1
        assert stats.scheduled_total == 1
        assert stats.approved == 0
        assert stats.delivered == 0
        assert stats.called_today == 1

    def test_admin_sees_everything(self, admin):
        stats = LeadStatsAggregator(lead_store=None).aggregate(pool_and_owned_leads(), admin, NOW)

        assert stats.scope == "all"
        assert stats.total_leads == 10
        assert stats.approved == 1
        assert stats.delivered == 1
        assert stats.scheduled_total == 2
        assert stats.status_counts[UNCLASSIFIED_STATUS_KEY] == 1
        assert stats.status_counts[LeadStatus.NO_ANSWER.value] == 2

    def test_decided_application_is_not_pending(self, admin):
        rows = [
            make_lead(
                status=LeadStatus.APPLICATION_RECEIVED.value,
                approval_status=ApprovalStatus.GUARANTOR_REQUESTED.value,
            ),
            make_lead(
                status=LeadStatus.APPLICATION_RECEIVED.value,
                approval_status=ApprovalStatus.PENDING.value,
            ),
        ]
        stats = LeadStatsAggregator(lead_store=None).aggregate(rows, admin, NOW)
        assert stats.pending_approval == 1

    def test_called_today_uses_local_calendar_day(self, admin):
        # 22:30 UTC on the previous day is 01:30 local time on NOW's date
        rows = [
            make_lead(status=LeadStatus.BUSY.value, last_call_at=NOW.replace(day=9, hour=22, minute=30)),
            make_lead(status=LeadStatus.BUSY.value, last_call_at=NOW.replace(day=9, hour=20, minute=0)),
        ]
        stats = LeadStatsAggregator(lead_store=None, timezone_name="Europe/Istanbul").aggregate(rows, admin, NOW)
        assert stats.called_today == 1


class TestCompute:
    """compute() against the SQL store"""

    @pytest.mark.asyncio
    async def test_compute_matches_aggregate(self, aggregator, lead_store, agent):
        await lead_store.insert_leads(pool_and_owned_leads())

        stats = await aggregator.compute(agent)

        assert stats.total_available == 4
        assert stats.total_leads == 3

    @pytest.mark.asyncio
    async def test_stats_are_idempotent(self, aggregator, lead_store, admin):
        await lead_store.insert_leads(pool_and_owned_leads())

        first = await aggregator.compute(admin)
        second = await aggregator.compute(admin)

        assert first == second
