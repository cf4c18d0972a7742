"""
LedgerEventStore -- append-only persistence of sale and wastage events.

Responsibility:
    Appends one event per audited decrement and answers history queries.
    There is no update or delete path; the ORM listeners in
    db/immutability.py block any attempt made through the session.

Invariants enforced:
    Audited decrement -- the engine appends the event in the same
        transaction as the decrement, so they commit or roll back together.
    At-most-once decrement -- ``find_*_by_request`` lets the engine replay a
        request instead of applying it twice.  The UNIQUE request_id column
        backs this up when two replays race.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import (
    SaleEventDraft,
    SaleEventRecord,
    WastageEventDraft,
    WastageEventRecord,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.ledger_event import SaleEvent, WastageEvent
from inventory_kernel.services.base import BaseService

logger = get_logger("services.ledger_store")


class LedgerEventStore(BaseService[SaleEvent]):
    """Append and read ledger events."""

    def append_sale(self, draft: SaleEventDraft) -> SaleEventRecord:
        model = SaleEvent(
            item_id=draft.item_id,
            item_name=draft.item_name,
            location_id=draft.location_id,
            quantity=draft.quantity,
            unit_revenue=draft.unit_revenue,
            occurred_at=draft.occurred_at,
            request_id=draft.request_id,
        )
        self.session.add(model)
        self.session.flush()
        logger.debug(
            "sale_event_appended",
            extra={"event_id": str(model.id), "item_id": str(draft.item_id)},
        )
        return SaleEventRecord.from_model(model)

    def append_wastage(self, draft: WastageEventDraft) -> WastageEventRecord:
        model = WastageEvent(
            item_id=draft.item_id,
            item_name=draft.item_name,
            location_id=draft.location_id,
            quantity=draft.quantity,
            reason_code=draft.reason_code,
            occurred_at=draft.occurred_at,
            request_id=draft.request_id,
        )
        self.session.add(model)
        self.session.flush()
        logger.debug(
            "wastage_event_appended",
            extra={"event_id": str(model.id), "item_id": str(draft.item_id)},
        )
        return WastageEventRecord.from_model(model)

    def list_sales(self, item_id: UUID | None = None) -> list[SaleEventRecord]:
        stmt = select(SaleEvent).order_by(SaleEvent.occurred_at, SaleEvent.id)
        if item_id is not None:
            stmt = stmt.where(SaleEvent.item_id == item_id)
        return [SaleEventRecord.from_model(m) for m in self.session.scalars(stmt)]

    def list_wastage(self, item_id: UUID | None = None) -> list[WastageEventRecord]:
        stmt = select(WastageEvent).order_by(WastageEvent.occurred_at, WastageEvent.id)
        if item_id is not None:
            stmt = stmt.where(WastageEvent.item_id == item_id)
        return [WastageEventRecord.from_model(m) for m in self.session.scalars(stmt)]

    def find_sale_by_request(self, request_id: str) -> SaleEventRecord | None:
        model = self.session.scalar(
            select(SaleEvent).where(SaleEvent.request_id == request_id)
        )
        return SaleEventRecord.from_model(model) if model is not None else None

    def find_wastage_by_request(self, request_id: str) -> WastageEventRecord | None:
        model = self.session.scalar(
            select(WastageEvent).where(WastageEvent.request_id == request_id)
        )
        return WastageEventRecord.from_model(model) if model is not None else None
