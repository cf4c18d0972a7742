"""
Module: inventory_kernel.models.ledger_event
Responsibility: ORM persistence for the append-only sale and wastage ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Ledger immutability -- rows are append-only; ORM UPDATE/DELETE is blocked
        by db/immutability.py.
    At-most-once decrement -- request_id is UNIQUE, so a replayed request
        cannot append a second event (and its decrement rolls back with it).

Audit relevance:
    Each event is the justification for one quantity decrement.  item_id is
    deliberately not a foreign key: events are historical facts and outlive
    the item they refer to.  item_name and location_id are snapshots taken
    at recording time.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString


class SaleEvent(Base):
    """An immutable record of units sold from one item."""

    __tablename__ = "sale_events"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_events_quantity_positive"),
        CheckConstraint("unit_revenue >= 0", name="ck_sale_events_revenue_non_negative"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    unit_revenue: Mapped[Decimal] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, index=True
    )
    request_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )


class WastageEvent(Base):
    """An immutable record of units written off from one item."""

    __tablename__ = "wastage_events"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_wastage_events_quantity_positive"),
    )

    item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    location_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason_code: Mapped[str] = mapped_column(String(50), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, index=True
    )
    request_id: Mapped[str | None] = mapped_column(
        String(100), nullable=True, unique=True
    )
