"""
Module: inventory_kernel.models.location
Responsibility: ORM persistence for warehouses (stock-holding sites).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Location references -- items point at their location through a foreign
    key with ON DELETE RESTRICT, so a referenced location cannot be removed
    even by a write that bypasses LocationStore.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase


class Location(TimestampedBase):
    """A physical site holding stock (a warehouse)."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Location {self.name}>"
