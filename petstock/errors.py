from __future__ import annotations

from typing import Optional


class PetStockError(Exception):
    """Base class for every error raised by the stock/sales core."""


class ValidationError(PetStockError, ValueError):
    """Malformed or out-of-range input, raised before any write."""


class NotFoundError(PetStockError, LookupError):
    """Reference to a product, customer or document that does not exist."""


class InsufficientStockError(ValidationError):
    def __init__(self, requested: int, available: int, product_name: Optional[str] = None):
        self.requested = int(requested)
        self.available = int(available)
        self.product_name = product_name
        msg = f"Not enough stock. Only {self.available} available."
        if product_name:
            msg = f"{product_name}: {msg}"
        super().__init__(msg)


class StoreError(PetStockError):
    """Raised by a document store when a write could not be applied."""


class TransactionError(PetStockError):
    """
    An atomic commit failed at the storage boundary.
    Nothing from the rejected batch was applied.
    """


class NotificationError(PetStockError):
    """The notification text service could not produce a message."""
