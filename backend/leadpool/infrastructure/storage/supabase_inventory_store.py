"""
Supabase Inventory Store
"""
from datetime import datetime
from typing import List, Optional

from supabase import Client

from leadpool.domain.interfaces.inventory_store import InventoryStore
from leadpool.domain.models.inventory import InventoryItem, InventoryStatus
from leadpool.utils.time_utils import to_iso
from .supabase_query import execute_query

INVENTORY_TABLE = "inventory"


class SupabaseInventoryStore(InventoryStore):
    """Stock items in the `inventory` table"""

    def __init__(self, client: Client):
        self.client = client

    def _table(self):
        return self.client.table(INVENTORY_TABLE)

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        response = execute_query(self._table().select("*").eq("id", item_id).limit(1), "get inventory item")
        return InventoryItem.model_validate(response.data[0]) if response.data else None

    async def list_items(self, status: Optional[str] = None, limit: int = 500) -> List[InventoryItem]:
        query = self._table().select("*")
        if status:
            query = query.eq("status", status)
        response = execute_query(
            query.order("entered_at", desc=True).limit(limit),
            "list inventory",
        )
        return [InventoryItem.model_validate(row) for row in (response.data or [])]

    async def insert_item(self, item: InventoryItem) -> InventoryItem:
        response = execute_query(self._table().insert(item.model_dump(mode="json")), "insert inventory item")
        return InventoryItem.model_validate(response.data[0]) if response.data else item

    async def save_item(self, item: InventoryItem) -> InventoryItem:
        row = item.model_dump(mode="json")
        row.pop("id", None)
        response = execute_query(self._table().update(row).eq("id", item.id), "save inventory item")
        return InventoryItem.model_validate(response.data[0]) if response.data else item

    async def mark_sold(self, item_id: str, lead_id: str, exited_at: datetime) -> Optional[InventoryItem]:
        response = execute_query(
            self._table().update({
                "status": InventoryStatus.SOLD.value,
                "exited_at": to_iso(exited_at),
                "customer_id": lead_id,
            }).eq("id", item_id).eq("status", InventoryStatus.IN_STOCK.value),
            "mark inventory item sold",
        )
        return InventoryItem.model_validate(response.data[0]) if response.data else None

    async def return_to_stock(self, item_id: str, lead_id: str) -> Optional[InventoryItem]:
        response = execute_query(
            self._table().update({
                "status": InventoryStatus.IN_STOCK.value,
                "exited_at": None,
                "customer_id": None,
            }).eq("id", item_id).eq("status", InventoryStatus.SOLD.value).eq("customer_id", lead_id),
            "return inventory item to stock",
        )
        return InventoryItem.model_validate(response.data[0]) if response.data else None
