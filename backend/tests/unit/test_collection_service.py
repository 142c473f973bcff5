"""
Unit Tests for the Collection Service
Debtor rotation, filtering, counters and notes on the SQL store.
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from leadpool.domain.exceptions import LeadNotFoundError, LeadValidationError
from leadpool.domain.models.collection import AWAITING_ACTION, OVERDUE_CLASS
from leadpool.domain.services.collection_service import CollectionService
from tests.unit.factories import NOW, make_lead

TODAY = date(2026, 3, 10)


def debtor(**overrides):
    data = {"collection_class": OVERDUE_CLASS}
    data.update(overrides)
    return make_lead(**data)


@pytest.fixture
def service(collection_store, lead_store, clock):
    return CollectionService(collection_store, lead_store, clock=clock)


class TestNextDebtor:

    @pytest.mark.asyncio
    async def test_never_called_debtor_first(self, service, lead_store, agent):
        called = debtor(last_call_at=NOW - timedelta(days=2))
        never = debtor(last_call_at=None)
        await lead_store.insert_leads([called, never])

        assert (await service.next_debtor(agent)).id == never.id

    @pytest.mark.asyncio
    async def test_least_recently_called_next(self, service, lead_store, agent):
        yesterday = debtor(last_call_at=NOW - timedelta(days=1))
        last_week = debtor(last_call_at=NOW - timedelta(days=7))
        await lead_store.insert_leads([yesterday, last_week])

        assert (await service.next_debtor(agent)).id == last_week.id

    @pytest.mark.asyncio
    async def test_recently_called_and_current_customers_skipped(self, service, lead_store, agent):
        await lead_store.insert_leads([
            debtor(last_call_at=NOW - timedelta(minutes=90)),
            make_lead(collection_class="Current", last_call_at=None),
            make_lead(last_call_at=None),
        ])

        assert await service.next_debtor(agent) is None

    @pytest.mark.asyncio
    async def test_recall_gap_is_configurable(self, collection_store, lead_store, clock, agent):
        lead = debtor(last_call_at=NOW - timedelta(minutes=45))
        await lead_store.insert_lead(lead)
        service = CollectionService(collection_store, lead_store, recall_gap_minutes=30, clock=clock)

        assert (await service.next_debtor(agent)).id == lead.id

    @pytest.mark.asyncio
    async def test_next_does_not_claim(self, service, lead_store, agent, other_agent):
        lead = debtor()
        await lead_store.insert_lead(lead)

        first = await service.next_debtor(agent)
        second = await service.next_debtor(other_agent)

        assert first.id == second.id == lead.id
        assert (await lead_store.get_lead(lead.id)).owner_email is None


class TestListDebtors:

    @pytest.mark.asyncio
    async def test_awaiting_action_matches_empty_status(self, service, lead_store):
        blank = debtor(collection_status="")
        missing = debtor(collection_status=None)
        promised = debtor(collection_status="Promised to Pay")
        await lead_store.insert_leads([blank, missing, promised])

        page = await service.list_debtors(status=AWAITING_ACTION)

        assert {lead.id for lead in page.leads} == {blank.id, missing.id}
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_exact_status_filter(self, service, lead_store):
        promised = debtor(collection_status="Promised to Pay")
        await lead_store.insert_leads([promised, debtor(collection_status="Unreachable")])

        page = await service.list_debtors(status="Promised to Pay")

        assert [lead.id for lead in page.leads] == [promised.id]

    @pytest.mark.asyncio
    async def test_promise_filters_use_local_day(self, service, lead_store):
        today = debtor(payment_promise_date=TODAY)
        tomorrow = debtor(payment_promise_date=TODAY + timedelta(days=1))
        broken = debtor(payment_promise_date=TODAY - timedelta(days=3))
        await lead_store.insert_leads([today, tomorrow, broken, debtor()])

        assert [l.id for l in (await service.list_debtors(promise="today")).leads] == [today.id]
        assert [l.id for l in (await service.list_debtors(promise="tomorrow")).leads] == [tomorrow.id]
        assert [l.id for l in (await service.list_debtors(promise="overdue")).leads] == [broken.id]

    @pytest.mark.asyncio
    async def test_pagination_meta(self, service, lead_store):
        await lead_store.insert_leads([
            debtor(last_call_at=NOW - timedelta(hours=h)) for h in range(5, 0, -1)
        ])

        page = await service.list_debtors(page=2, limit=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert page.page == 2
        assert len(page.leads) == 2
        assert page.leads[0].last_call_at == NOW - timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_unknown_promise_filter_rejected(self, service):
        with pytest.raises(LeadValidationError) as exc:
            await service.list_debtors(promise="next-week")
        assert exc.value.field == "promise"

    @pytest.mark.asyncio
    async def test_bad_paging_rejected(self, service):
        with pytest.raises(LeadValidationError):
            await service.list_debtors(page=0)
        with pytest.raises(LeadValidationError):
            await service.list_debtors(limit=1000)


class TestCollectionStats:

    @pytest.mark.asyncio
    async def test_counts_by_status_and_promise(self, service, lead_store):
        await lead_store.insert_leads([
            debtor(collection_status="Promised to Pay", payment_promise_date=TODAY),
            debtor(collection_status="Promised to Pay", payment_promise_date=TODAY + timedelta(days=1)),
            debtor(collection_status=None, payment_promise_date=TODAY - timedelta(days=2)),
            debtor(collection_status="", payment_promise_date=TODAY + timedelta(days=5)),
            make_lead(collection_status="Promised to Pay"),
        ])

        stats = await service.stats()

        assert stats.total == 4
        assert stats.by_status == {"Promised to Pay": 2, AWAITING_ACTION: 2}
        assert stats.promises.today == 1
        assert stats.promises.tomorrow == 1
        assert stats.promises.overdue == 1

    def test_today_follows_local_midnight(self, service):
        # 22:30 UTC is already the next day in Istanbul
        late = datetime(2026, 3, 10, 22, 30, tzinfo=timezone.utc)
        rows = [debtor(payment_promise_date=date(2026, 3, 11))]

        stats = service.aggregate(rows, late)

        assert stats.promises.today == 1
        assert stats.promises.tomorrow == 0

    def test_timestamp_promise_is_read_as_date(self):
        lead = debtor(payment_promise_date="2026-03-11T00:00:00+00:00")
        assert lead.payment_promise_date == date(2026, 3, 11)


class TestCollectionNotes:

    @pytest.mark.asyncio
    async def test_notes_in_thread_order(self, collection_store, lead_store, agent):
        lead = debtor()
        await lead_store.insert_lead(lead)
        times = iter([NOW, NOW + timedelta(minutes=5)])
        service = CollectionService(collection_store, lead_store, clock=lambda: next(times))

        await service.add_note(lead.id, "Promised to pay Friday", agent)
        await service.add_note(lead.id, "  Called back, no answer  ", agent)
        notes = await service.list_notes(lead.id)

        assert [n.note for n in notes] == ["Promised to pay Friday", "Called back, no answer"]
        assert notes[0].author_email == "agent@example.com"
        assert notes[0].created_at == NOW

    @pytest.mark.asyncio
    async def test_empty_note_rejected(self, service, lead_store, agent):
        lead = debtor()
        await lead_store.insert_lead(lead)
        with pytest.raises(LeadValidationError):
            await service.add_note(lead.id, "   ", agent)

    @pytest.mark.asyncio
    async def test_note_on_unknown_lead_rejected(self, service, collection_store, agent):
        with pytest.raises(LeadNotFoundError):
            await service.add_note("missing", "Hello", agent)
        assert await collection_store.list_notes("missing") == []
