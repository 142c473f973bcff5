"""
Domain Exceptions
Raised by services and translated to HTTP responses by the API layer
"""
from typing import Optional


class LeadValidationError(Exception):
    """Raised when a lead edit fails validation. Nothing is persisted."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class LeadNotFoundError(Exception):
    """Raised when a lead id does not exist."""
    def __init__(self, lead_id: str):
        self.lead_id = lead_id
        self.message = f"Lead not found: {lead_id}"
        super().__init__(self.message)


class InventoryItemNotFoundError(Exception):
    """Raised when an inventory item id does not exist."""
    def __init__(self, item_id: str):
        self.item_id = item_id
        self.message = f"Inventory item not found: {item_id}"
        super().__init__(self.message)


class InventoryUnavailableError(Exception):
    """Raised when assigning an item that is not in stock."""
    def __init__(self, message: str = "Item is not in stock"):
        self.message = message
        super().__init__(self.message)


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached or rejects a query."""
    def __init__(self, message: str = "Data store unavailable"):
        self.message = message
        super().__init__(self.message)


class LeadAccessDeniedError(Exception):
    """Raised when an agent acts on a lead owned by someone else."""
    def __init__(self, message: str = "Lead is assigned to another agent"):
        self.message = message
        super().__init__(self.message)


class LeadConflictError(Exception):
    """Raised when a lead changed hands between reading and saving it."""
    def __init__(self, message: str = "Lead was taken by another agent while it was being edited"):
        self.message = message
        super().__init__(self.message)
