"""
Inventory Service
Stock management and assignment of devices to leads on sale.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from leadpool.domain.exceptions import (
    InventoryItemNotFoundError,
    InventoryUnavailableError,
    LeadConflictError,
    LeadNotFoundError,
    LeadValidationError,
)
from leadpool.domain.interfaces.inventory_store import InventoryStore
from leadpool.domain.interfaces.lead_store import LeadStore
from leadpool.domain.models.actor import Actor
from leadpool.domain.models.audit import AuditAction
from leadpool.domain.models.inventory import InventoryItem, InventoryStatus
from leadpool.domain.models.lead import Lead, LeadStatus, SoldItem
from leadpool.domain.services.audit_log import AuditLogService
from leadpool.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

READ_ONLY_ITEM_FIELDS = {"id", "added_by", "entered_at"}


class InventoryService:
    """
    Inventory operations.

    Selling is a two-step write: the item is moved to sold with a
    conditional update first, then the lead receives the sold item. If
    the lead write fails the item is put back in stock.
    """

    def __init__(
        self,
        inventory_store: InventoryStore,
        lead_store: LeadStore,
        audit_log: AuditLogService,
        clock: Callable[[], datetime] = utc_now
    ):
        self.inventory_store = inventory_store
        self.lead_store = lead_store
        self.audit_log = audit_log
        self._clock = clock

    async def list_items(self, status: Optional[str] = None, limit: int = 500) -> List[InventoryItem]:
        if status and status not in {s.value for s in InventoryStatus}:
            raise LeadValidationError(f"Unknown inventory status: {status}", field="status")
        return await self.inventory_store.list_items(status=status, limit=limit)

    async def get_item(self, item_id: str) -> InventoryItem:
        item = await self.inventory_store.get_item(item_id)
        if item is None:
            raise InventoryItemNotFoundError(item_id)
        return item

    async def add_item(self, data: Dict[str, Any], actor: Actor) -> InventoryItem:
        payload = {k: v for k, v in data.items() if k not in READ_ONLY_ITEM_FIELDS}
        try:
            item = InventoryItem.model_validate(payload)
        except ValidationError as e:
            raise LeadValidationError(f"Invalid inventory item: {e.errors()[0].get('msg')}")

        item.status = InventoryStatus.IN_STOCK.value
        item.entered_at = self._clock()
        item.added_by = actor.email
        saved = await self.inventory_store.insert_item(item)
        logger.info(f"Inventory item {saved.id} ({saved.label()}) added by {actor.email}")
        return saved

    async def update_item(self, item_id: str, changes: Dict[str, Any]) -> InventoryItem:
        item = await self.get_item(item_id)
        data = item.model_dump()
        for key, value in changes.items():
            if key in READ_ONLY_ITEM_FIELDS:
                continue
            if key not in InventoryItem.model_fields:
                raise LeadValidationError(f"Unknown field: {key}", field=key)
            data[key] = value
        try:
            updated = InventoryItem.model_validate(data)
        except ValidationError as e:
            raise LeadValidationError(f"Invalid inventory item: {e.errors()[0].get('msg')}")
        return await self.inventory_store.save_item(updated)

    async def assign_to_lead(
        self,
        item_id: str,
        lead_id: str,
        actor: Actor,
        installment_months: Optional[int] = None
    ) -> Lead:
        """
        Sell a stock item to a lead.

        Raises:
            InventoryItemNotFoundError: Unknown item
            InventoryUnavailableError: Item already sold
            LeadNotFoundError: Unknown lead
            LeadConflictError: Lead changed owner during the sale
        """
        item = await self.get_item(item_id)
        if not item.in_stock:
            raise InventoryUnavailableError()

        lead = await self.lead_store.get_lead(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)

        now = self._clock()
        sold = await self.inventory_store.mark_sold(item_id, lead_id, now)
        if sold is None:
            raise InventoryUnavailableError()

        old_status = lead.status_value
        owner = lead.owner_email
        lead.sold_items = [
            *lead.sold_items,
            SoldItem(
                imei=item.imei or "",
                serial_no=item.serial_no or "",
                brand=item.brand,
                model=item.model,
                sold_at=now,
                price=item.price_for(installment_months),
                installment_months=installment_months,
            ),
        ]
        lead.product_imei = item.imei or ""
        lead.product_serial_no = item.serial_no or ""
        lead.status = LeadStatus.DELIVERED.value
        lead.delivered_at = now
        lead.delivered_by = actor.email
        lead.owner_email = lead.owner_email or actor.email
        lead.updated_at = now
        lead.updated_by = actor.email

        try:
            saved = await self.lead_store.save_lead(lead, expected_owner=owner)
            if saved is None:
                raise LeadConflictError()
        except Exception as e:
            logger.error(f"Sale of item {item_id} to lead {lead_id} failed, returning item to stock: {e}")
            await self.inventory_store.return_to_stock(item_id, lead_id)
            raise
        await self.audit_log.record(
            actor_email=actor.email,
            action=AuditAction.UPDATE_FIELDS,
            lead_id=lead_id,
            old_value=old_status,
            new_value=saved.status,
            note=f"Stock item assigned: {item.label()} (IMEI: {item.imei or '-'})",
        )
        logger.info(f"Inventory item {item_id} sold to lead {lead_id} by {actor.email}")
        return saved
