"""
Lead Import Service
Bulk lead intake from CSV files.

- Phone validation and normalization
- Duplicate detection (within the file and against stored leads)
- Batch insertion
- Per-row error reporting
"""
import csv
import io
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from pydantic import BaseModel

from leadpool.domain.exceptions import LeadValidationError
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import Lead, LeadStatus
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.domain.services.lead_validation import normalize_phone, is_valid_national_id
from leadpool.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

IMPORT_CHANNEL = "Import"
MAX_REPORTED_ERRORS = 100

# CSV header (lower-cased) -> Lead field
COLUMN_ALIASES: Dict[str, str] = {
    "full_name": "full_name",
    "name": "full_name",
    "ad_soyad": "full_name",
    "phone": "phone",
    "phone_number": "phone",
    "telefon": "phone",
    "national_id": "national_id",
    "tc_kimlik": "national_id",
    "email": "email",
    "city": "city",
    "district": "district",
    "occupation": "occupation",
    "requested_product": "requested_product",
    "description": "description",
}


class ImportRowError(BaseModel):
    """Single import error"""
    row: int
    error: str
    phone: Optional[str] = None


class LeadImportResult(BaseModel):
    """Bulk import response"""
    total_rows: int
    imported: int
    failed: int
    duplicates_skipped: int = 0
    errors: List[ImportRowError]


def decode_csv(content: bytes) -> str:
    """Decode uploaded bytes, trying common encodings"""
    for encoding in ["utf-8-sig", "utf-8", "cp1254", "latin-1"]:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise LeadValidationError("Unable to decode CSV file. Please use UTF-8 encoding.")


class LeadImportService:
    """Imports leads into the unowned pool with status New"""

    def __init__(
        self,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lead_store = lead_store
        self.audit_log = audit_log
        self._clock = clock

    def _row_to_lead(self, row: Dict[str, str], actor: Actor, now: datetime) -> Lead:
        fields: Dict[str, str] = {}
        for key, value in row.items():
            if key is None:
                continue
            target = COLUMN_ALIASES.get(key.lower().strip())
            if target and value and value.strip():
                fields[target] = value.strip()

        if not fields.get("full_name"):
            raise ValueError("Missing full_name")
        if not fields.get("phone"):
            raise ValueError("Missing phone")
        fields["phone"] = normalize_phone(fields["phone"])
        if fields.get("national_id") and not is_valid_national_id(fields["national_id"]):
            raise ValueError("Invalid national id")

        return Lead(
            **fields,
            status=LeadStatus.NEW.value,
            owner_email=None,
            application_channel=IMPORT_CHANNEL,
            created_at=now,
            created_by=actor.email,
            updated_at=now,
            updated_by=actor.email,
        )

    async def import_csv(self, content: bytes, actor: Actor, skip_duplicates: bool = True) -> LeadImportResult:
        """
        Import leads from CSV content.

        Expected columns (case-insensitive): full_name, phone; optional
        national_id, email, city, district, occupation, requested_product,
        description.

        Raises:
            LeadValidationError: Undecodable file or missing required columns
        """
        text_content = decode_csv(content)
        reader = csv.DictReader(io.StringIO(text_content))

        headers = {COLUMN_ALIASES.get(h.lower().strip()) for h in (reader.fieldnames or [])}
        if not {"full_name", "phone"}.issubset(headers):
            found = ", ".join(reader.fieldnames or [])
            raise LeadValidationError(f"CSV must have 'full_name' and 'phone' columns. Found: {found}")

        now = self._clock()
        total_rows = 0
        duplicates_skipped = 0
        errors: List[ImportRowError] = []
        parsed: List[tuple[int, Lead]] = []
        seen_phones: Set[str] = set()

        for row_num, row in enumerate(reader, start=2):  # Row 1 is header
            total_rows += 1
            try:
                lead = self._row_to_lead(row, actor, now)
            except ValueError as e:
                phone = next((v for k, v in row.items() if k and COLUMN_ALIASES.get(k.lower().strip()) == "phone"), None)
                errors.append(ImportRowError(row=row_num, error=str(e), phone=phone))
                continue

            if lead.phone in seen_phones:
                duplicates_skipped += 1
                continue
            seen_phones.add(lead.phone)
            parsed.append((row_num, lead))

        if skip_duplicates and parsed:
            existing = await self.lead_store.existing_phones([lead.phone for _, lead in parsed])
            kept = [(n, lead) for n, lead in parsed if lead.phone not in existing]
            duplicates_skipped += len(parsed) - len(kept)
            parsed = kept

        imported = 0
        if parsed:
            imported = await self.lead_store.insert_leads([lead for _, lead in parsed])

        logger.info(
            f"CSV import by {actor.email}: {imported} imported, "
            f"{duplicates_skipped} duplicates skipped, {len(errors)} errors"
        )
        if imported:
            await self.audit_log.record(
                actor_email=actor.email,
                action=AuditAction.CUSTOM_ACTION,
                new_value=str(imported),
                note=f"CSV import: {imported} leads added to the pool",
            )

        return LeadImportResult(
            total_rows=total_rows,
            imported=imported,
            failed=len(errors),
            duplicates_skipped=duplicates_skipped,
            errors=errors[:MAX_REPORTED_ERRORS]
        )
