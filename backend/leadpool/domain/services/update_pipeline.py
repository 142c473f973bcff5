"""
Lead Update Pipeline
Validates, persists and audits edits to lead records, and handles intake.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from leadpool.domain.exceptions import (
    LeadAccessDeniedError,
    LeadConflictError,
    LeadNotFoundError,
    LeadValidationError,
)
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.lead import (
    Lead,
    LeadStatus,
    CALL_OUTCOME_STATUSES,
    DELIVERED_STATUSES,
    RELEASE_STATUSES,
)
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.domain.services.lead_validation import normalize_phone, validate_lead
from leadpool.utils.time_utils import utc_now, to_utc, to_iso

logger = logging.getLogger(__name__)

# Never taken from a submission
PROTECTED_FIELDS = {"id", "created_at", "created_by", "updated_at", "updated_by", "claimed_at"}

# Maintained by the pipeline itself; not reported as field edits
SYSTEM_FIELDS = PROTECTED_FIELDS | {
    "status",
    "owner_email",
    "last_call_at",
    "next_call_at",
    "delivered_at",
    "delivered_by",
}

DATETIME_FIELDS = [
    name for name, field in Lead.model_fields.items()
    if field.annotation in (datetime, Optional[datetime])
]


def _first_error(exc: ValidationError) -> LeadValidationError:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or None
    return LeadValidationError(f"Invalid value for {field}: {error.get('msg')}", field=field)


def _normalize_datetimes(lead: Lead) -> Lead:
    for name in DATETIME_FIELDS:
        setattr(lead, name, to_utc(getattr(lead, name)))
    return lead


def merge_submission(previous: Lead, changes: Dict[str, Any]) -> Lead:
    """
    Overlay submitted fields on the stored record.

    Raises:
        LeadValidationError: On unknown fields or values of the wrong type
    """
    data = previous.model_dump()
    for key, value in changes.items():
        if key in PROTECTED_FIELDS:
            continue
        if key not in Lead.model_fields:
            raise LeadValidationError(f"Unknown field: {key}", field=key)
        data[key] = value

    try:
        merged = Lead.model_validate(data)
    except ValidationError as e:
        raise _first_error(e)
    return _normalize_datetimes(merged)


def changed_fields(before: Lead, after: Lead) -> List[str]:
    """Names of user-editable fields whose values differ"""
    old = before.model_dump()
    new = after.model_dump()
    return sorted(
        name for name in Lead.model_fields
        if name not in SYSTEM_FIELDS and old.get(name) != new.get(name)
    )


class LeadUpdateService:
    """
    Update pipeline for lead edits and intake.

    Writes are full-record replaces scoped to one lead. Validation runs
    before any write; store failures propagate unchanged.
    """

    def __init__(
        self,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        clock: Callable[[], datetime] = utc_now
    ):
        self.lead_store = lead_store
        self.audit_log = audit_log
        self._clock = clock

    async def get_lead(self, lead_id: str, actor: Actor) -> Lead:
        lead = await self.lead_store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)
        self._check_access(lead, actor)
        return lead

    @staticmethod
    def _check_access(lead: Lead, actor: Actor) -> None:
        if actor.is_admin or not lead.is_owned:
            return
        if lead.owner_email != actor.email:
            raise LeadAccessDeniedError()

    def prepare_update(self, previous: Lead, changes: Dict[str, Any], actor: Actor, now: datetime) -> Lead:
        """
        Build the record to persist: merge, normalise, validate, then apply
        ownership, delivery stamp and last-call refresh.

        Release statuses clear the owner. Admins keep or reassign it. Agents
        cannot reassign; a status change on a pool lead makes the agent its
        owner, while a plain field edit leaves it in the pool.
        """
        candidate = merge_submission(previous, changes)
        if candidate.phone:
            try:
                candidate.phone = normalize_phone(candidate.phone)
            except ValueError as e:
                raise LeadValidationError(f"Invalid phone number: {e}", field="phone")

        validate_lead(candidate, previous_status=previous.status_value)

        new_status = candidate.status_value
        status_changed = new_status != previous.status_value

        if new_status in RELEASE_STATUSES:
            candidate.owner_email = None
        elif actor.is_admin:
            candidate.owner_email = candidate.owner_email if candidate.is_owned else None
        elif previous.is_owned:
            candidate.owner_email = previous.owner_email
        else:
            # A pool lead becomes the agent's only when they record a call on it
            candidate.owner_email = actor.email if status_changed else None

        if (
            new_status in DELIVERED_STATUSES
            and previous.status_value not in DELIVERED_STATUSES
            and candidate.delivered_at is None
        ):
            candidate.delivered_at = now
            candidate.delivered_by = candidate.owner_email or actor.email

        if status_changed and new_status in CALL_OUTCOME_STATUSES:
            candidate.last_call_at = now

        candidate.updated_at = now
        candidate.updated_by = actor.email
        return candidate

    async def update_lead(self, lead_id: str, changes: Dict[str, Any], actor: Actor) -> Lead:
        """
        Validate and persist an edit.

        Args:
            lead_id: Lead to edit
            changes: Submitted field values (partial or full record)
            actor: Acting user

        Returns:
            The persisted lead

        Raises:
            LeadNotFoundError: Unknown lead id
            LeadAccessDeniedError: Lead owned by another agent
            LeadValidationError: Submission rejected; nothing was written
            LeadConflictError: The owner changed after the lead was read
        """
        previous = await self.get_lead(lead_id, actor)
        now = self._clock()
        candidate = self.prepare_update(previous, changes, actor, now)

        saved = await self.lead_store.save_lead(candidate, expected_owner=previous.owner_email)
        if saved is None:
            logger.warning(f"Lead {lead_id} changed owner while {actor.email} was editing it")
            raise LeadConflictError()
        logger.info(f"Lead {lead_id} saved by {actor.email} (status: {saved.status_value or '-'})")

        await self._record_changes(previous, saved, actor)
        return saved

    async def _record_changes(self, previous: Lead, saved: Lead, actor: Actor) -> None:
        if saved.status_value != previous.status_value:
            await self.audit_log.record(
                actor_email=actor.email,
                action=AuditAction.UPDATE_STATUS,
                lead_id=saved.id,
                old_value=previous.status_value,
                new_value=saved.status_value,
                note="Ownership released" if saved.status_value in RELEASE_STATUSES else None,
            )

        if saved.next_call_at is not None and saved.next_call_at != previous.next_call_at:
            await self.audit_log.record(
                actor_email=actor.email,
                action=AuditAction.SET_NEXT_CALL,
                lead_id=saved.id,
                old_value=to_iso(previous.next_call_at) if previous.next_call_at else None,
                new_value=to_iso(saved.next_call_at),
            )

        fields = changed_fields(previous, saved)
        if fields:
            await self.audit_log.record(
                actor_email=actor.email,
                action=AuditAction.UPDATE_FIELDS,
                lead_id=saved.id,
                new_value=", ".join(fields),
                note=f"{len(fields)} field(s) updated",
            )

    async def create_lead(self, data: Dict[str, Any], actor: Actor) -> Lead:
        """
        Intake a single lead.

        National id may be omitted only for preliminary requests; the
        creator becomes the owner.
        """
        payload = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
        unknown = [k for k in payload if k not in Lead.model_fields]
        if unknown:
            raise LeadValidationError(f"Unknown field: {unknown[0]}", field=unknown[0])
        try:
            lead = _normalize_datetimes(Lead.model_validate(payload))
        except ValidationError as e:
            raise _first_error(e)

        now = self._clock()
        lead.status = lead.status_value or LeadStatus.NEW.value
        if lead.status != LeadStatus.REQUEST_PENDING.value and not (lead.national_id or "").strip():
            raise LeadValidationError("National id is required", field="national_id")
        if lead.phone:
            try:
                lead.phone = normalize_phone(lead.phone)
            except ValueError as e:
                raise LeadValidationError(f"Invalid phone number: {e}", field="phone")
        validate_lead(lead, is_new=True)

        lead.owner_email = actor.email
        lead.created_at = now
        lead.created_by = actor.email
        lead.updated_at = now
        lead.updated_by = actor.email
        lead.application_channel = lead.application_channel or "Panel"

        saved = await self.lead_store.insert_lead(lead)
        logger.info(f"Lead {saved.id} created by {actor.email}")

        await self.audit_log.record(
            actor_email=actor.email,
            action=AuditAction.CREATED,
            lead_id=saved.id,
            new_value=saved.status,
            note=f"Created manually. Channel: {saved.application_channel}",
        )
        return saved
