"""
ItemStore -- persistence of items and their conditional quantity writes.

Responsibility:
    CRUD for item rows plus the two quantity primitives every stock
    operation is built from: a conditional decrement and an increment of
    the pool for a (location, name) pair.

Architecture position:
    Kernel > Services -- imperative shell.  Called only by InventoryEngine,
    inside the engine's transaction.

Invariants enforced:
    Non-negative quantity -- ``decrement`` is a single conditional UPDATE
        (``... WHERE id = :id AND quantity >= :n``).  The check and the
        write happen in one statement, so no interleaving of concurrent
        decrements can take a row below zero.  Zero rows updated means the
        precondition failed; nothing was written.
    One pool per product per location -- ``create_or_increment`` looks up
        the target pool by (location_id, name) and inserts only when none
        exists, retrying as an increment when a concurrent insert wins.

Failure modes:
    - DuplicateItemError: create/rename onto an existing (location, name).
    - LocationNotFoundError: create against a location removed concurrently.
    - ConflictError: target pool disappeared between insert race and retry.
    - StockCapacityExceededError: an increment would overflow the target pool.

Audit relevance:
    Every write bumps ``version`` and ``updated_at``, so a caller holding an
    ItemRecord can tell whether it is stale.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.dtos import ItemDraft, ItemRecord
from inventory_kernel.domain.validation import MAX_QUANTITY
from inventory_kernel.exceptions import (
    ConflictError,
    DuplicateItemError,
    LocationNotFoundError,
    StockCapacityExceededError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.item import Item
from inventory_kernel.models.location import Location
from inventory_kernel.services.base import BaseService

logger = get_logger("services.item_store")

_items = Item.__table__


class ItemStore(BaseService[Item]):
    """
    Item persistence with atomic quantity updates.

    Contract:
        Every method flushes within the caller's transaction and returns
        ItemRecord snapshots, never ORM instances.  ``None`` from a write
        means no row matched; the caller decides which error that is.

    Non-goals:
        - Does NOT commit.
        - Does NOT validate input; drafts and patches arrive validated.
    """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, item_id: UUID) -> ItemRecord | None:
        model = self.session.execute(
            select(Item)
            .where(Item.id == item_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return ItemRecord.from_model(model) if model is not None else None

    def list(self, location_id: UUID | None = None) -> list[ItemRecord]:
        stmt = select(Item).order_by(Item.name, Item.location_id, Item.id)
        if location_id is not None:
            stmt = stmt.where(Item.location_id == location_id)
        return [ItemRecord.from_model(m) for m in self.session.scalars(stmt)]

    def find_pool(self, name: str, location_id: UUID) -> ItemRecord | None:
        """The item holding ``name`` at ``location_id``, if any."""
        model = self.session.execute(
            select(Item)
            .where(Item.location_id == location_id, Item.name == name)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return ItemRecord.from_model(model) if model is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, draft: ItemDraft, now: datetime) -> ItemRecord:
        """
        Insert a new item from a validated draft.

        Raises:
            DuplicateItemError: The product is already stocked there.
            LocationNotFoundError: The location does not exist.
        """
        model = Item(
            name=draft.name,
            category=draft.category,
            quantity=draft.quantity,
            unit_price=draft.unit_price,
            threshold=draft.threshold,
            location_id=draft.location_id,
            version=1,
            created_at=now,
            updated_at=now,
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(model)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            if self.find_pool(draft.name, draft.location_id) is not None:
                raise DuplicateItemError(draft.name, str(draft.location_id)) from None
            if self.session.get(Location, draft.location_id) is None:
                raise LocationNotFoundError(str(draft.location_id)) from None
            raise
        return ItemRecord.from_model(model)

    def update(
        self,
        item_id: UUID,
        patch: dict[str, Any],
        now: datetime,
        expected_version: int | None = None,
    ) -> ItemRecord | None:
        """
        Apply an already-validated patch of editable fields.

        With ``expected_version`` the write only lands if the row still
        carries that version.

        Raises:
            DuplicateItemError: A rename collides with another pool at the
                same location.
        """
        stmt = update(_items).where(_items.c.id == item_id)
        if expected_version is not None:
            stmt = stmt.where(_items.c.version == expected_version)
        stmt = stmt.values(
            **patch, version=_items.c.version + 1, updated_at=now
        ).returning(*_items.c)

        savepoint = self.session.begin_nested()
        try:
            row = self.session.execute(stmt).mappings().one_or_none()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            current = self.get(item_id)
            if current is not None and "name" in patch:
                raise DuplicateItemError(patch["name"], str(current.location_id)) from None
            raise
        return ItemRecord.from_row(row) if row is not None else None

    def delete(self, item_id: UUID) -> ItemRecord | None:
        row = (
            self.session.execute(
                delete(_items).where(_items.c.id == item_id).returning(*_items.c)
            )
            .mappings()
            .one_or_none()
        )
        return ItemRecord.from_row(row) if row is not None else None

    def decrement(
        self,
        item_id: UUID,
        quantity: int,
        now: datetime,
        exclude_location_id: UUID | None = None,
    ) -> ItemRecord | None:
        """
        Atomically take ``quantity`` units from an item.

        The row is only written if it holds at least ``quantity`` units (and,
        for transfers, is not already at ``exclude_location_id``).  Returns
        the updated record, or None when the precondition failed.
        """
        stmt = update(_items).where(
            _items.c.id == item_id, _items.c.quantity >= quantity
        )
        if exclude_location_id is not None:
            stmt = stmt.where(_items.c.location_id != exclude_location_id)
        stmt = stmt.values(
            quantity=_items.c.quantity - quantity,
            version=_items.c.version + 1,
            updated_at=now,
        ).returning(*_items.c)

        row = self.session.execute(stmt).mappings().one_or_none()
        if row is None:
            return None
        record = ItemRecord.from_row(row)
        logger.debug(
            "item_decremented",
            extra={
                "item_id": str(item_id),
                "quantity": quantity,
                "remaining": record.quantity,
            },
        )
        return record

    def increment_at_location(
        self, name: str, location_id: UUID, quantity: int, now: datetime
    ) -> ItemRecord | None:
        """
        Add ``quantity`` to the pool for ``name`` at ``location_id``, if it exists.

        Raises:
            StockCapacityExceededError: The pool exists but the sum would not
                fit the quantity column.
        """
        row = (
            self.session.execute(
                update(_items)
                .where(
                    _items.c.location_id == location_id,
                    _items.c.name == name,
                    _items.c.quantity <= MAX_QUANTITY - quantity,
                )
                .values(
                    quantity=_items.c.quantity + quantity,
                    version=_items.c.version + 1,
                    updated_at=now,
                )
                .returning(*_items.c)
            )
            .mappings()
            .one_or_none()
        )
        if row is not None:
            return ItemRecord.from_row(row)

        pool = self.find_pool(name, location_id)
        if pool is None:
            return None
        headroom = MAX_QUANTITY - pool.quantity
        logger.warning(
            "increment_rejected_capacity",
            extra={"target_item_id": str(pool.id), "requested": quantity, "headroom": headroom},
        )
        raise StockCapacityExceededError(str(pool.id), quantity, headroom)

    def create_or_increment(
        self,
        source: ItemRecord,
        location_id: UUID,
        quantity: int,
        now: datetime,
    ) -> tuple[ItemRecord, bool]:
        """
        Credit ``quantity`` units of ``source``'s product at ``location_id``.

        Merges into the existing pool when one exists; otherwise creates a
        new item carrying the source's descriptive fields.  Returns the
        target record and whether it was created.
        """
        existing = self.increment_at_location(source.name, location_id, quantity, now)
        if existing is not None:
            return existing, False

        model = Item(
            name=source.name,
            category=source.category,
            quantity=quantity,
            unit_price=source.unit_price,
            threshold=source.threshold,
            location_id=location_id,
            version=1,
            created_at=now,
            updated_at=now,
        )
        # A concurrent transfer may create the same pool first.  The savepoint
        # keeps the source decrement while the insert is retried as an update.
        savepoint = self.session.begin_nested()
        try:
            self.session.add(model)
            self.session.flush()
            savepoint.commit()
            return ItemRecord.from_model(model), True
        except IntegrityError:
            logger.debug(
                "transfer_target_race_retry",
                extra={"item_name": source.name, "location_id": str(location_id)},
            )
            savepoint.rollback()

        existing = self.increment_at_location(source.name, location_id, quantity, now)
        if existing is None:
            raise ConflictError(
                "Item", source.name, "target pool vanished during transfer"
            )
        return existing, False
