"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the engine boundary:
    drafts (caller input), records (read-side snapshots of stored rows) and
    operation results.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` / ``from_row()`` are boundary converters invoked only
    from the store services; callers never receive ORM instances.

Data flow:
    ItemDraft -> ItemStore.create -> ItemRecord
    (item, quantity) -> InventoryEngine.record_sale -> SaleResult
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

if TYPE_CHECKING:
    from inventory_kernel.models.item import Item as ItemModel
    from inventory_kernel.models.ledger_event import (
        SaleEvent as SaleEventModel,
        WastageEvent as WastageEventModel,
    )
    from inventory_kernel.models.location import Location as LocationModel


class StockState(str, Enum):
    """Where an item sits relative to its reorder threshold."""

    IN_STOCK = "in_stock"      # quantity > threshold
    LOW_STOCK = "low_stock"    # 0 < quantity <= threshold
    DEPLETED = "depleted"      # quantity == 0

    @classmethod
    def classify(cls, quantity: int, threshold: int) -> StockState:
        if quantity == 0:
            return cls.DEPLETED
        if quantity <= threshold:
            return cls.LOW_STOCK
        return cls.IN_STOCK


def _from_attrs(cls, source: Any):
    return cls(**{f.name: getattr(source, f.name) for f in fields(cls)})


def _from_mapping(cls, row: Mapping[str, Any]):
    return cls(**{f.name: row[f.name] for f in fields(cls)})


# =============================================================================
# Drafts (caller input)
# =============================================================================


@dataclass(frozen=True)
class ItemDraft:
    """Fields needed to create an item.  Validated by ``validate_item_draft``."""

    name: str
    location_id: UUID
    quantity: int = 0
    unit_price: Decimal = Decimal("0")
    threshold: int = 0
    category: str = ""


@dataclass(frozen=True)
class LocationDraft:
    """Fields needed to create a location."""

    name: str
    address: str | None = None


@dataclass(frozen=True)
class SaleEventDraft:
    """Ledger input for one sale.  Built by the engine, never by callers."""

    item_id: UUID
    item_name: str
    location_id: UUID
    quantity: int
    unit_revenue: Decimal
    occurred_at: datetime
    request_id: str | None = None


@dataclass(frozen=True)
class WastageEventDraft:
    """Ledger input for one write-off.  Built by the engine, never by callers."""

    item_id: UUID
    item_name: str
    location_id: UUID
    quantity: int
    reason_code: str
    occurred_at: datetime
    request_id: str | None = None


# =============================================================================
# Records (read side)
# =============================================================================


@dataclass(frozen=True)
class ItemRecord:
    """Snapshot of one item row as the store returned it."""

    id: UUID
    name: str
    category: str
    quantity: int
    unit_price: Decimal
    threshold: int
    location_id: UUID
    version: int
    created_at: datetime
    updated_at: datetime

    @property
    def state(self) -> StockState:
        return StockState.classify(self.quantity, self.threshold)

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.threshold

    @property
    def deficiency(self) -> int:
        """``quantity - threshold``; the most negative value needs restocking first."""
        return self.quantity - self.threshold

    @classmethod
    def from_model(cls, model: ItemModel) -> ItemRecord:
        return _from_attrs(cls, model)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ItemRecord:
        return _from_mapping(cls, row)


@dataclass(frozen=True)
class LocationRecord:
    """Snapshot of one location row."""

    id: UUID
    name: str
    address: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, model: LocationModel) -> LocationRecord:
        return _from_attrs(cls, model)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> LocationRecord:
        return _from_mapping(cls, row)


@dataclass(frozen=True)
class SaleEventRecord:
    """An immutable sale as recorded in the ledger."""

    id: UUID
    item_id: UUID
    item_name: str
    location_id: UUID
    quantity: int
    unit_revenue: Decimal
    occurred_at: datetime
    request_id: str | None

    @property
    def revenue(self) -> Decimal:
        return self.unit_revenue * self.quantity

    @classmethod
    def from_model(cls, model: SaleEventModel) -> SaleEventRecord:
        return _from_attrs(cls, model)


@dataclass(frozen=True)
class WastageEventRecord:
    """An immutable write-off as recorded in the ledger."""

    id: UUID
    item_id: UUID
    item_name: str
    location_id: UUID
    quantity: int
    reason_code: str
    occurred_at: datetime
    request_id: str | None

    @classmethod
    def from_model(cls, model: WastageEventModel) -> WastageEventRecord:
        return _from_attrs(cls, model)


# =============================================================================
# Operation results
# =============================================================================


@dataclass(frozen=True)
class TransferResult:
    """Both sides of a committed transfer."""

    source: ItemRecord
    target: ItemRecord
    quantity: int
    target_created: bool


@dataclass(frozen=True)
class SaleResult:
    """
    The item after the decrement and the sale event justifying it.

    ``replayed`` is True when the request id had already been applied; the
    event is the original one and no decrement happened this time.
    """

    item: ItemRecord | None
    event: SaleEventRecord
    replayed: bool = False


@dataclass(frozen=True)
class WastageResult:
    """The item after the decrement and the wastage event justifying it."""

    item: ItemRecord | None
    event: WastageEventRecord
    replayed: bool = False


@dataclass(frozen=True)
class InventorySnapshot:
    """Items and locations read in a single transaction."""

    items: tuple[ItemRecord, ...]
    locations: tuple[LocationRecord, ...]
