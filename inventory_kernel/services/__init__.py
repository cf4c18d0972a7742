"""Kernel services: stores and the InventoryEngine that composes them."""

from inventory_kernel.services.inventory_engine import InventoryEngine
from inventory_kernel.services.item_store import ItemStore
from inventory_kernel.services.ledger_store import LedgerEventStore
from inventory_kernel.services.location_store import LocationStore

__all__ = [
    "InventoryEngine",
    "ItemStore",
    "LedgerEventStore",
    "LocationStore",
]
