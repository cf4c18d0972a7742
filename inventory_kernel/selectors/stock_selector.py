"""
StockSelector -- read-side queries over item quantities.

Responsibility:
    Low-stock detection and per-product totals.  Derived on every call from
    the item rows; no stored alert state exists that could drift.
"""

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import ItemRecord
from inventory_kernel.models.item import Item
from inventory_kernel.selectors.base import BaseSelector


class StockSelector(BaseSelector[Item]):
    """Read-only stock queries."""

    def low_stock_items(self) -> list[ItemRecord]:
        """
        Every item with ``quantity <= threshold``, most deficient first.

        Ordered by ``quantity - threshold`` ascending; ties by name, then
        location, then id so the order is stable across calls.
        """
        stmt = (
            select(Item)
            .where(Item.quantity <= Item.threshold)
            .order_by(
                (Item.quantity - Item.threshold).asc(),
                Item.name,
                Item.location_id,
                Item.id,
            )
        )
        return [ItemRecord.from_model(m) for m in self.session.scalars(stmt)]

    def aggregate_quantity(self, product_name: str) -> int:
        """Total quantity of ``product_name`` across all locations (0 if unknown)."""
        total = self.session.scalar(
            select(func.coalesce(func.sum(Item.quantity), 0)).where(
                Item.name == product_name
            )
        )
        return int(total or 0)

    def totals_by_product(self) -> dict[str, int]:
        """Total quantity per product name across all locations."""
        rows = self.session.execute(
            select(Item.name, func.sum(Item.quantity))
            .group_by(Item.name)
            .order_by(Item.name)
        )
        return {name: int(total) for name, total in rows}
