"""ORM models. Importing this package registers every table on Base.metadata."""

from inventory_kernel.models.item import Item
from inventory_kernel.models.ledger_event import SaleEvent, WastageEvent
from inventory_kernel.models.location import Location

__all__ = [
    "Item",
    "Location",
    "SaleEvent",
    "WastageEvent",
]
