"""
Inventory Domain Models
"""
import uuid
from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime
from enum import Enum


class InventoryStatus(str, Enum):
    """Stock status of a device"""
    IN_STOCK = "in_stock"
    SOLD = "sold"


class InventoryItem(BaseModel):
    """A serialised device held in stock"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    brand: str
    model: str
    serial_no: Optional[str] = None
    imei: Optional[str] = None
    status: InventoryStatus = InventoryStatus.IN_STOCK
    entered_at: Optional[datetime] = None
    exited_at: Optional[datetime] = None
    customer_id: Optional[str] = None  # Linked lead once sold
    added_by: Optional[str] = None
    # Plan key -> price, e.g. {"cash": 24000, "6": 27000, "12": 30000}
    installment_prices: Dict[str, float] = Field(default_factory=dict)

    model_config = {"use_enum_values": True}

    @property
    def in_stock(self) -> bool:
        return self.status == InventoryStatus.IN_STOCK.value

    def price_for(self, installment_months: Optional[int] = None) -> Optional[float]:
        """Price for an installment term, or the cash price when no term is given."""
        key = str(installment_months) if installment_months else "cash"
        return self.installment_prices.get(key)

    def label(self) -> str:
        return f"{self.brand} {self.model}".strip()
