"""
Module: inventory_kernel.models.item
Responsibility: ORM persistence for stock pools: one row per product per
    location, carrying the on-hand quantity and the reorder threshold.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Non-negative quantity -- CHECK (quantity >= 0).  The conditional UPDATEs
        in ItemStore never reach it; it guards writes made outside the kernel.
    One pool per product per location -- UNIQUE (location_id, name).  The
        transfer merge rule relies on it to find the target pool.
    Location references -- FK to locations.id with ON DELETE RESTRICT.

Failure modes:
    - IntegrityError on a duplicate (location_id, name) insert.  ItemStore
      turns this into DuplicateItemError or retries as an increment.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase, UUIDString


class Item(TimestampedBase):
    """A stock-keeping record for a product at one location."""

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("location_id", "name", name="uq_items_location_name"),
        CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        CheckConstraint("threshold >= 0", name="ck_items_threshold_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_items_unit_price_non_negative"),
        Index("ix_items_name", "name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    threshold: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Bumped on every write; update_item may pin it for optimistic concurrency.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<Item {self.name} @{self.location_id}: {self.quantity}>"
