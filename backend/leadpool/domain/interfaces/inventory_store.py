"""
Inventory Store Interface
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from leadpool.domain.models.inventory import InventoryItem


class InventoryStore(ABC):
    """Persistence for stock items"""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        pass

    @abstractmethod
    async def list_items(self, status: Optional[str] = None, limit: int = 500) -> List[InventoryItem]:
        """Items, newest entry first"""
        pass

    @abstractmethod
    async def insert_item(self, item: InventoryItem) -> InventoryItem:
        pass

    @abstractmethod
    async def save_item(self, item: InventoryItem) -> InventoryItem:
        pass

    @abstractmethod
    async def mark_sold(self, item_id: str, lead_id: str, exited_at: datetime) -> Optional[InventoryItem]:
        """
        Conditionally move an item from in_stock to sold.

        Returns:
            The updated item, or None if it was no longer in stock
        """
        pass

    @abstractmethod
    async def return_to_stock(self, item_id: str, lead_id: str) -> Optional[InventoryItem]:
        """
        Undo mark_sold for a sale to `lead_id` that could not be completed.

        Only applies while the item is still sold to that lead.
        """
        pass
