"""
Unit Tests for CSV Lead Import
"""
import pytest

from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import LeadStatus
from leadpool.services.lead_import_service import LeadImportService, decode_csv
from tests.unit.factories import VALID_NATIONAL_ID, make_lead


@pytest.fixture
def service(lead_store, audit_log, clock):
    return LeadImportService(lead_store, audit_log, clock=clock)


class TestDecodeCSV:

    def test_utf8_with_bom(self):
        assert decode_csv("\ufefffull_name,phone\n".encode("utf-8")) == "full_name,phone\n"

    def test_turkish_codepage(self):
        content = "ad_soyad,telefon\nŞule Öztürk,05321234567\n".encode("cp1254")
        assert "Şule Öztürk" in decode_csv(content)


class TestImportCSV:

    @pytest.mark.asyncio
    async def test_imports_into_unowned_pool(self, service, lead_store, admin):
        content = (
            "full_name,phone,national_id,city\n"
            f"Ayse Yilmaz,0532 123 45 67,{VALID_NATIONAL_ID},Istanbul\n"
            "Ali Demir,0533 765 43 21,,Ankara\n"
        ).encode("utf-8")

        result = await service.import_csv(content, admin)

        assert result.total_rows == 2
        assert result.imported == 2
        assert result.failed == 0
        leads = await lead_store.list_leads(status=LeadStatus.NEW.value)
        assert {lead.phone for lead in leads} == {"+905321234567", "+905337654321"}
        assert all(lead.owner_email is None for lead in leads)
        assert all(lead.application_channel == "Import" for lead in leads)

    @pytest.mark.asyncio
    async def test_alias_headers(self, service, admin):
        content = "Ad_Soyad,Telefon\nAyse Yilmaz,05321234567\n".encode("utf-8")
        result = await service.import_csv(content, admin)
        assert result.imported == 1

    @pytest.mark.asyncio
    async def test_missing_required_columns(self, service, admin):
        with pytest.raises(LeadValidationError, match="full_name"):
            await service.import_csv(b"name_only\nAyse\n", admin)

    @pytest.mark.asyncio
    async def test_bad_rows_are_reported(self, service, admin):
        content = (
            "full_name,phone,national_id\n"
            "Ayse Yilmaz,123,\n"
            ",05321234567,\n"
            "Ali Demir,05337654321,11111111111\n"
            "Veli Kaya,05351112233,\n"
        ).encode("utf-8")

        result = await service.import_csv(content, admin)

        assert result.imported == 1
        assert result.failed == 3
        assert [e.row for e in result.errors] == [2, 3, 4]
        assert result.errors[2].error == "Invalid national id"

    @pytest.mark.asyncio
    async def test_duplicates_skipped(self, service, lead_store, admin):
        await lead_store.insert_lead(make_lead(phone="+905321234567"))
        content = (
            "full_name,phone\n"
            "Ayse Yilmaz,0532 123 45 67\n"
            "Ali Demir,05337654321\n"
            "Ali Demir,+90 533 765 43 21\n"
        ).encode("utf-8")

        result = await service.import_csv(content, admin)

        assert result.imported == 1
        assert result.duplicates_skipped == 2

    @pytest.mark.asyncio
    async def test_import_is_audited_once(self, service, audit_store, admin):
        content = "full_name,phone\nAyse Yilmaz,05321234567\nAli Demir,05337654321\n".encode("utf-8")

        await service.import_csv(content, admin)

        entries = await audit_store.list_recent()
        assert len(entries) == 1
        assert entries[0].action == AuditAction.CUSTOM_ACTION.value
        assert entries[0].new_value == "2"
