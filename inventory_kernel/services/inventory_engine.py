"""
InventoryEngine -- the public entry point for every inventory operation.

Responsibility:
    Validates input, opens one store transaction per operation, composes the
    store primitives, commits, and reports typed errors.  Every multi-step
    operation (transfer, sale, wastage) runs in exactly one transaction, so
    either all of its writes become visible or none do.

Architecture position:
    Kernel > Services -- imperative shell.  Sits above ItemStore,
    LocationStore, LedgerEventStore and StockSelector.  The only kernel
    class that commits.

Invariants enforced:
    Non-negative quantity -- every decrement goes through
        ``ItemStore.decrement`` (conditional UPDATE).
    Transfer conservation -- decrement and increment share a transaction.
    Audited decrement -- a sale/wastage event is appended in the same
        transaction as its decrement.
    At-most-once decrement -- a ``request_id`` already in the ledger is
        replayed, never re-applied.

Failure modes:
    - ValidationError (and subclasses): input rejected before any write.
    - ItemNotFoundError / LocationNotFoundError: unknown identifier.
    - InsufficientStockError: carries the available quantity.
    - StockCapacityExceededError: a transfer would overflow the target pool.
    - ConflictError: a concurrent write broke the precondition.
    - StoreUnavailableError: store down, timed out or locked.  Reads are
      retried with backoff first; writes never are.

Audit relevance:
    Each committed operation logs one INFO event (``item_created``,
    ``transfer_completed``, ``sale_recorded`` ...) and each rejection one
    WARNING, all carrying the bound LogContext fields.
"""

import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, Mapping, NoReturn, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.db.errors import translate_store_errors
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    InventorySnapshot,
    ItemDraft,
    ItemRecord,
    LocationDraft,
    LocationRecord,
    SaleEventDraft,
    SaleEventRecord,
    SaleResult,
    TransferResult,
    WastageEventDraft,
    WastageEventRecord,
    WastageResult,
)
from inventory_kernel.domain.validation import (
    coerce_money,
    coerce_uuid,
    optional_request_id,
    require_name,
    require_positive_quantity,
    require_reason_code,
    validate_item_draft,
    validate_item_patch,
    validate_location_draft,
    validate_location_patch,
)
from inventory_kernel.exceptions import (
    ConflictError,
    InsufficientStockError,
    ItemNotFoundError,
    LocationNotFoundError,
    SameLocationTransferError,
    ValidationError,
)
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.services.item_store import ItemStore
from inventory_kernel.services.ledger_store import LedgerEventStore
from inventory_kernel.services.location_store import LocationStore
from inventory_kernel.utils.retry import retry_read

logger = get_logger("services.inventory_engine")

T = TypeVar("T")


def _unknown_location(location_id: UUID) -> ValidationError:
    return ValidationError(
        f"Unknown location {location_id}",
        [{"field": "location_id", "message": "location does not exist"}],
    )


class InventoryEngine:
    """
    Orchestrates inventory operations over the stores.

    Contract:
        Each public method is one unit of work: validate, open a session,
        run, commit on success, rollback on any failure.  Callers receive
        frozen records, never ORM instances, and never raw DBAPI errors.

    Non-goals:
        - Does NOT retry writes.  A write failing with StoreUnavailableError
          has an unknown outcome; callers re-read, or replay a sale/wastage
          with the same request_id.
        - Does NOT hold state between calls besides its configuration.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        read_attempts: int = 3,
        read_backoff_seconds: float = 0.05,
        read_max_backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._read_attempts = read_attempts
        self._read_backoff_seconds = read_backoff_seconds
        self._read_max_backoff_seconds = read_max_backoff_seconds
        self._sleep = sleep

    # =========================================================================
    # Transaction plumbing
    # =========================================================================

    @contextmanager
    def _write(
        self, operation: str, entity_type: str = "Item", entity_id: object = None
    ) -> Generator[Session, None, None]:
        with LogContext.bind(operation=operation), translate_store_errors(
            operation, entity_type, entity_id
        ):
            session = self._session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def _read(self, operation: str, fn: Callable[[Session], T]) -> T:
        def attempt() -> T:
            with LogContext.bind(operation=operation), translate_store_errors(
                operation
            ):
                session = self._session_factory()
                try:
                    return fn(session)
                finally:
                    session.close()

        return retry_read(
            attempt,
            operation=operation,
            attempts=self._read_attempts,
            backoff_seconds=self._read_backoff_seconds,
            max_backoff_seconds=self._read_max_backoff_seconds,
            sleep=self._sleep,
        )

    def _reject_decrement(
        self,
        operation: str,
        items: ItemStore,
        item_id: UUID,
        quantity: int,
        target_location_id: UUID | None = None,
    ) -> NoReturn:
        """Work out why a conditional decrement matched no row, and raise it."""
        current = items.get(item_id)
        if current is None:
            logger.warning(f"{operation}_rejected_not_found")
            raise ItemNotFoundError(str(item_id))
        if target_location_id is not None and current.location_id == target_location_id:
            logger.warning(f"{operation}_rejected_same_location")
            raise SameLocationTransferError(str(item_id), str(target_location_id))
        if current.quantity >= quantity:
            # Restocked between the rejected write and this read.
            logger.warning(f"{operation}_rejected_conflict")
            raise ConflictError(
                "Item", str(item_id), "quantity changed concurrently; retry"
            )
        logger.warning(
            f"{operation}_rejected_insufficient_stock",
            extra={"requested": quantity, "available": current.quantity},
        )
        raise InsufficientStockError(str(item_id), quantity, current.quantity)

    # =========================================================================
    # Items
    # =========================================================================

    def create_item(self, draft: ItemDraft) -> ItemRecord:
        """
        Create an item at an existing location.

        Raises:
            ValidationError: Bad field, or unknown location.
            DuplicateItemError: Product already stocked at that location.
        """
        draft = validate_item_draft(draft)
        with LogContext.bind(operation="create_item", location_id=draft.location_id):
            with self._write("create_item") as session:
                if not LocationStore(session).exists(draft.location_id):
                    raise _unknown_location(draft.location_id)
                try:
                    record = ItemStore(session).create(draft, self._clock.now())
                except LocationNotFoundError as exc:
                    raise _unknown_location(draft.location_id) from exc
            logger.info(
                "item_created",
                extra={
                    "item_id": str(record.id),
                    "item_name": record.name,
                    "quantity": record.quantity,
                },
            )
        return record

    def update_item(
        self,
        item_id: UUID | str,
        fields: Mapping[str, Any],
        expected_version: int | None = None,
    ) -> ItemRecord:
        """
        Change editable descriptive fields of an item.

        ``quantity`` and ``location_id`` are rejected; only transfer, sale
        and wastage move stock.  With ``expected_version`` the update fails
        with ConflictError if the item changed since the caller read it.
        """
        item_id = coerce_uuid(item_id, "item_id")
        patch = validate_item_patch(fields)
        with LogContext.bind(operation="update_item", item_id=item_id):
            with self._write("update_item", "Item", item_id) as session:
                items = ItemStore(session)
                record = items.update(item_id, patch, self._clock.now(), expected_version)
                if record is None:
                    current = items.get(item_id)
                    if current is None:
                        raise ItemNotFoundError(str(item_id))
                    logger.warning(
                        "update_item_rejected_stale_version",
                        extra={
                            "expected_version": expected_version,
                            "current_version": current.version,
                        },
                    )
                    raise ConflictError(
                        "Item",
                        str(item_id),
                        f"expected version {expected_version}, "
                        f"found {current.version}",
                    )
            logger.info(
                "item_updated",
                extra={"fields": sorted(patch), "version": record.version},
            )
        return record

    def delete_item(self, item_id: UUID | str) -> ItemRecord:
        """Remove an item.  Its ledger events are kept.  Returns the removed record."""
        item_id = coerce_uuid(item_id, "item_id")
        with LogContext.bind(operation="delete_item", item_id=item_id):
            with self._write("delete_item", "Item", item_id) as session:
                record = ItemStore(session).delete(item_id)
                if record is None:
                    raise ItemNotFoundError(str(item_id))
            logger.info("item_deleted", extra={"quantity": record.quantity})
        return record

    def get_item(self, item_id: UUID | str) -> ItemRecord:
        item_id = coerce_uuid(item_id, "item_id")

        def run(session: Session) -> ItemRecord:
            record = ItemStore(session).get(item_id)
            if record is None:
                raise ItemNotFoundError(str(item_id))
            return record

        return self._read("get_item", run)

    def list_items(self, location_id: UUID | str | None = None) -> list[ItemRecord]:
        if location_id is not None:
            location_id = coerce_uuid(location_id, "location_id")
        return self._read("list_items", lambda s: ItemStore(s).list(location_id))

    # =========================================================================
    # Stock movements
    # =========================================================================

    def transfer(
        self,
        item_id: UUID | str,
        target_location_id: UUID | str,
        quantity: int,
    ) -> TransferResult:
        """
        Move ``quantity`` units of an item to another location.

        The source is decremented first with a conditional write, then the
        target pool for the same product is incremented (or created).  Both
        happen in one transaction: the total across locations is unchanged
        and no intermediate state is ever visible.

        Raises:
            ValidationError: Bad quantity or identifiers.
            SameLocationTransferError: Target is the item's own location.
            ItemNotFoundError / LocationNotFoundError: Unknown identifier.
            InsufficientStockError: Fewer than ``quantity`` units at source.
            StockCapacityExceededError: The target pool cannot hold that many more.
        """
        item_id = coerce_uuid(item_id, "item_id")
        target = coerce_uuid(target_location_id, "target_location_id")
        quantity = require_positive_quantity(quantity)

        with LogContext.bind(operation="transfer", item_id=item_id, location_id=target):
            with self._write("transfer", "Item", item_id) as session:
                items = ItemStore(session)
                now = self._clock.now()
                source = items.decrement(
                    item_id, quantity, now, exclude_location_id=target
                )
                if source is None:
                    self._reject_decrement("transfer", items, item_id, quantity, target)
                if not LocationStore(session).exists(target):
                    logger.warning("transfer_rejected_unknown_target")
                    raise LocationNotFoundError(str(target))
                target_record, created = items.create_or_increment(
                    source, target, quantity, now
                )
            logger.info(
                "transfer_completed",
                extra={
                    "invariant": KernelInvariant.TRANSFER_CONSERVATION.value,
                    "source_location_id": str(source.location_id),
                    "target_item_id": str(target_record.id),
                    "quantity": quantity,
                    "target_created": created,
                },
            )
        return TransferResult(
            source=source,
            target=target_record,
            quantity=quantity,
            target_created=created,
        )

    def record_sale(
        self,
        item_id: UUID | str,
        quantity: int,
        unit_revenue: Any,
        request_id: str | None = None,
    ) -> SaleResult:
        """
        Decrement stock for a sale and append the sale event.

        Passing the same ``request_id`` again returns the original event with
        ``replayed=True`` and leaves stock untouched.
        """
        item_id = coerce_uuid(item_id, "item_id")
        quantity = require_positive_quantity(quantity)
        unit_revenue = coerce_money(unit_revenue, "unit_revenue")
        request_id = optional_request_id(request_id)

        def append(ledger: LedgerEventStore, item: ItemRecord, now) -> SaleEventRecord:
            return ledger.append_sale(
                SaleEventDraft(
                    item_id=item.id,
                    item_name=item.name,
                    location_id=item.location_id,
                    quantity=quantity,
                    unit_revenue=unit_revenue,
                    occurred_at=now,
                    request_id=request_id,
                )
            )

        with LogContext.bind(
            operation="record_sale", item_id=item_id, request_id=request_id
        ):
            item, event, replayed = self._audited_decrement(
                "record_sale",
                item_id,
                quantity,
                request_id,
                LedgerEventStore.find_sale_by_request,
                append,
                {"unit_revenue": unit_revenue},
            )
            if not replayed:
                logger.info(
                    "sale_recorded",
                    extra={
                        "event_id": str(event.id),
                        "quantity": quantity,
                        "remaining": item.quantity,
                    },
                )
        return SaleResult(item=item, event=event, replayed=replayed)

    def record_wastage(
        self,
        item_id: UUID | str,
        quantity: int,
        reason_code: str,
        request_id: str | None = None,
    ) -> WastageResult:
        """Decrement stock for spoilage/damage and append the wastage event."""
        item_id = coerce_uuid(item_id, "item_id")
        quantity = require_positive_quantity(quantity)
        reason_code = require_reason_code(reason_code)
        request_id = optional_request_id(request_id)

        def append(ledger: LedgerEventStore, item: ItemRecord, now) -> WastageEventRecord:
            return ledger.append_wastage(
                WastageEventDraft(
                    item_id=item.id,
                    item_name=item.name,
                    location_id=item.location_id,
                    quantity=quantity,
                    reason_code=reason_code,
                    occurred_at=now,
                    request_id=request_id,
                )
            )

        with LogContext.bind(
            operation="record_wastage", item_id=item_id, request_id=request_id
        ):
            item, event, replayed = self._audited_decrement(
                "record_wastage",
                item_id,
                quantity,
                request_id,
                LedgerEventStore.find_wastage_by_request,
                append,
                {"reason_code": reason_code},
            )
            if not replayed:
                logger.info(
                    "wastage_recorded",
                    extra={
                        "event_id": str(event.id),
                        "quantity": quantity,
                        "reason_code": reason_code,
                        "remaining": item.quantity,
                    },
                )
        return WastageResult(item=item, event=event, replayed=replayed)

    def _audited_decrement(
        self,
        operation: str,
        item_id: UUID,
        quantity: int,
        request_id: str | None,
        find_prior: Callable[[LedgerEventStore, str], Any],
        append: Callable[[LedgerEventStore, ItemRecord, Any], Any],
        payload: Mapping[str, Any],
    ) -> tuple[ItemRecord | None, Any, bool]:
        """
        Decrement plus ledger append in one transaction, replaying known requests.

        A known ``request_id`` replays only if ``payload`` (the event fields
        besides item and quantity) matches the recorded event.

        Returns ``(item, event, replayed)``.
        """
        try:
            with self._write(operation, "Item", item_id) as session:
                ledger = LedgerEventStore(session)
                items = ItemStore(session)
                if request_id is not None:
                    prior = find_prior(ledger, request_id)
                    if prior is not None:
                        return self._replay(
                            operation, items, prior, item_id, quantity, payload
                        )
                now = self._clock.now()
                item = items.decrement(item_id, quantity, now)
                if item is None:
                    self._reject_decrement(operation, items, item_id, quantity)
                event = append(ledger, item, now)
                return item, event, False
        except ConflictError:
            if request_id is None:
                raise
            # Lost a race against the same request_id: the UNIQUE column
            # rejected our event and the whole transaction rolled back.
            prior = self._read(
                operation, lambda s: find_prior(LedgerEventStore(s), request_id)
            )
            if prior is None:
                raise
            return self._read(
                operation,
                lambda s: self._replay(
                    operation, ItemStore(s), prior, item_id, quantity, payload
                ),
            )

    def _replay(
        self,
        operation: str,
        items: ItemStore,
        prior: Any,
        item_id: UUID,
        quantity: int,
        payload: Mapping[str, Any],
    ) -> tuple[ItemRecord | None, Any, bool]:
        expected = {"item_id": item_id, "quantity": quantity, **payload}
        mismatched = sorted(
            name for name, value in expected.items() if getattr(prior, name) != value
        )
        if mismatched:
            logger.warning(
                f"{operation}_rejected_request_id_reuse",
                extra={"event_id": str(prior.id), "mismatched_fields": mismatched},
            )
            raise ValidationError(
                f"request_id {prior.request_id} was already used for a different "
                f"request (differs in {', '.join(mismatched)})",
                [{"field": "request_id", "message": "already used"}]
                + [
                    {"field": name, "message": "differs from the recorded event"}
                    for name in mismatched
                ],
            )
        logger.info(
            f"{operation}_replayed",
            extra={
                "invariant": KernelInvariant.AT_MOST_ONCE_DECREMENT.value,
                "event_id": str(prior.id),
            },
        )
        return items.get(item_id), prior, True

    # =========================================================================
    # Stock queries
    # =========================================================================

    def low_stock_items(self) -> list[ItemRecord]:
        """Items at or below their threshold, most deficient first."""
        return self._read("low_stock_items", lambda s: StockSelector(s).low_stock_items())

    def aggregate_quantity(self, product_name: str) -> int:
        """Total quantity of a product across every location; 0 if unknown."""
        product_name = require_name(product_name, "product_name")
        return self._read(
            "aggregate_quantity",
            lambda s: StockSelector(s).aggregate_quantity(product_name),
        )

    def totals_by_product(self) -> dict[str, int]:
        return self._read("totals_by_product", lambda s: StockSelector(s).totals_by_product())

    def snapshot(self) -> InventorySnapshot:
        """Every item and location, read in one transaction."""

        def run(session: Session) -> InventorySnapshot:
            return InventorySnapshot(
                items=tuple(ItemStore(session).list()),
                locations=tuple(LocationStore(session).list()),
            )

        return self._read("snapshot", run)

    # =========================================================================
    # Ledger queries
    # =========================================================================

    def list_sales(self, item_id: UUID | str | None = None) -> list[SaleEventRecord]:
        if item_id is not None:
            item_id = coerce_uuid(item_id, "item_id")
        return self._read("list_sales", lambda s: LedgerEventStore(s).list_sales(item_id))

    def list_wastage(
        self, item_id: UUID | str | None = None
    ) -> list[WastageEventRecord]:
        if item_id is not None:
            item_id = coerce_uuid(item_id, "item_id")
        return self._read(
            "list_wastage", lambda s: LedgerEventStore(s).list_wastage(item_id)
        )

    # =========================================================================
    # Locations
    # =========================================================================

    def create_location(self, draft: LocationDraft) -> LocationRecord:
        draft = validate_location_draft(draft)
        with LogContext.bind(operation="create_location"):
            with self._write("create_location", "Location") as session:
                record = LocationStore(session).create(draft, self._clock.now())
            logger.info(
                "location_created",
                extra={"location_id": str(record.id), "location_name": record.name},
            )
        return record

    def update_location(
        self, location_id: UUID | str, fields: Mapping[str, Any]
    ) -> LocationRecord:
        location_id = coerce_uuid(location_id, "location_id")
        patch = validate_location_patch(fields)
        with LogContext.bind(operation="update_location", location_id=location_id):
            with self._write("update_location", "Location", location_id) as session:
                record = LocationStore(session).update(
                    location_id, patch, self._clock.now()
                )
                if record is None:
                    raise LocationNotFoundError(str(location_id))
            logger.info("location_updated", extra={"fields": sorted(patch)})
        return record

    def delete_location(self, location_id: UUID | str) -> LocationRecord:
        """
        Remove a location no item references.

        Raises:
            LocationInUseError: Items still sit there.
            LocationNotFoundError: Unknown location.
        """
        location_id = coerce_uuid(location_id, "location_id")
        with LogContext.bind(operation="delete_location", location_id=location_id):
            with self._write("delete_location", "Location", location_id) as session:
                record = LocationStore(session).delete(location_id)
                if record is None:
                    raise LocationNotFoundError(str(location_id))
            logger.info("location_deleted")
        return record

    def get_location(self, location_id: UUID | str) -> LocationRecord:
        location_id = coerce_uuid(location_id, "location_id")

        def run(session: Session) -> LocationRecord:
            record = LocationStore(session).get(location_id)
            if record is None:
                raise LocationNotFoundError(str(location_id))
            return record

        return self._read("get_location", run)

    def list_locations(self) -> list[LocationRecord]:
        return self._read("list_locations", lambda s: LocationStore(s).list())
