"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must react differently to "fix your input", "not enough stock" and
"the store is down". Parsing message strings for that is fragile, so:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        engine.record_sale(item_id, 5, Decimal("2.50"))
    except InsufficientStockError as e:
        offer_quantity(e.available)            # Structured data
    except StoreUnavailableError:
        show_transient_failure()               # Manual retry

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- ProtectedFieldError
    |   +-- DuplicateItemError
    |   +-- SameLocationTransferError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- InsufficientStockError
    +-- StockCapacityExceededError
    |
    +-- ConflictError
    |
    +-- StoreUnavailableError
    |
    +-- ReferentialIntegrityError
    |   +-- LocationInUseError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed or out-of-range input
                | PROTECTED_FIELD             | quantity/location_id edited directly
                | DUPLICATE_ITEM              | Product already stocked at location
                | SAME_LOCATION_TRANSFER      | Transfer target == source location
----------------|-----------------------------|-----------------------------------------
Not found       | ITEM_NOT_FOUND              | Item ID doesn't exist
                | LOCATION_NOT_FOUND          | Location ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Stock           | INSUFFICIENT_STOCK          | Requested quantity exceeds available
                | STOCK_CAPACITY_EXCEEDED     | Increment would pass the quantity limit
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONFLICT                    | Concurrent write broke a precondition
----------------|-----------------------------|-----------------------------------------
Store           | STORE_UNAVAILABLE           | Connectivity, timeout, lock timeout
----------------|-----------------------------|-----------------------------------------
Referential     | LOCATION_IN_USE             | Location still referenced by items
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Ledger event updated or deleted

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ``transient`` separates retryable failures from actionable ones:

    except InventoryKernelError as e:
        if e.transient:
            show_retry_banner()
        else:
            show_field_message(e)

2. ConflictError is safe to retry ONCE after re-reading current state.

3. StoreUnavailableError on a write means the outcome is unknown. Re-read,
   or retry a sale/wastage with the same ``request_id`` (idempotent).
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    transient: bool = False


# Validation


class ValidationError(InventoryKernelError):
    """Input is malformed or out of range."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field_errors: list[dict] | None = None):
        self.field_errors = field_errors or []
        super().__init__(message)


class ProtectedFieldError(ValidationError):
    """A field that only stock operations may change was edited directly."""

    code: str = "PROTECTED_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(
            f"Field '{field}' cannot be updated directly; "
            "use transfer, record_sale or record_wastage",
            [{"field": field, "message": "protected field"}],
        )


class DuplicateItemError(ValidationError):
    """The product is already stocked at the location."""

    code: str = "DUPLICATE_ITEM"

    def __init__(self, name: str, location_id: str):
        self.name = name
        self.location_id = location_id
        super().__init__(
            f"Item '{name}' already exists at location {location_id}",
            [{"field": "name", "message": "already stocked at this location"}],
        )


class SameLocationTransferError(ValidationError):
    """Transfer target is the item's current location."""

    code: str = "SAME_LOCATION_TRANSFER"

    def __init__(self, item_id: str, location_id: str):
        self.item_id = item_id
        self.location_id = location_id
        super().__init__(
            f"Item {item_id} is already at location {location_id}",
            [{"field": "target_location_id", "message": "same as source"}],
        )


# Not found


class NotFoundError(InventoryKernelError):
    """Referenced identifier does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ItemNotFoundError(NotFoundError):
    """Item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("Item", item_id)


class LocationNotFoundError(NotFoundError):
    """Location with given ID was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__("Location", location_id)


# Stock


class InsufficientStockError(InventoryKernelError):
    """
    Requested quantity exceeds the quantity available.

    ``available`` is the quantity the store held when the conditional
    write was rejected, so the caller can offer a corrected amount.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: int, available: int):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


class StockCapacityExceededError(InventoryKernelError):
    """
    Adding the units would push a pool past the largest storable quantity.

    ``headroom`` is how many units the pool could still take.
    """

    code: str = "STOCK_CAPACITY_EXCEEDED"

    def __init__(self, item_id: str, requested: int, headroom: int):
        self.item_id = item_id
        self.requested = requested
        self.headroom = headroom
        super().__init__(
            f"Item {item_id} cannot take {requested} more units "
            f"(room for {headroom})"
        )


# Concurrency


class ConflictError(InventoryKernelError):
    """A concurrent write invalidated the operation's precondition."""

    code: str = "CONFLICT"
    transient: bool = True

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Conflict on {entity_type} {entity_id}: {reason}")


# Store


class StoreUnavailableError(InventoryKernelError):
    """The backing store could not be reached or did not answer in time."""

    code: str = "STORE_UNAVAILABLE"
    transient: bool = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store unavailable during {operation}: {reason}")


# Referential integrity


class ReferentialIntegrityError(InventoryKernelError):
    """Base exception for reference violations."""

    code: str = "REFERENTIAL_INTEGRITY"


class LocationInUseError(ReferentialIntegrityError):
    """Location cannot be deleted while items reference it."""

    code: str = "LOCATION_IN_USE"

    def __init__(self, location_id: str, item_count: int):
        self.location_id = location_id
        self.item_count = item_count
        super().__init__(
            f"Location {location_id} is referenced by {item_count} item(s); "
            "reassign or remove them first"
        )


# Immutability


class ImmutabilityViolationError(InventoryKernelError):
    """Attempted to modify or delete an append-only ledger record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
