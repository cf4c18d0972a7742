"""
ORM-Level Immutability Enforcement for the sale and wastage ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

If a check fails the flush is aborted and the database is never modified.

Core-level statements (``delete(table)``) bypass mapper events.  The kernel
never issues them against ledger tables; test cleanup does, on purpose.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable          | Why
----------------|-------------------------|----------------------------------
SaleEvent       | ALWAYS (from creation)  | Justifies a quantity decrement
WastageEvent    | ALWAYS (from creation)  | Justifies a quantity decrement

===============================================================================
USAGE
===============================================================================

Called once at startup (inventory_config.bridges does it):

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": KernelInvariant.LEDGER_IMMUTABILITY.value,
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_sale_event_immutability(mapper, connection, target):
    """Prevent any updates to SaleEvent records."""
    _block("SaleEvent", target, "UPDATE", "Sale events are immutable and cannot be modified")


def _check_sale_event_delete(mapper, connection, target):
    """Prevent deletion of SaleEvent records."""
    _block("SaleEvent", target, "DELETE", "Sale events cannot be deleted")


def _check_wastage_event_immutability(mapper, connection, target):
    """Prevent any updates to WastageEvent records."""
    _block(
        "WastageEvent", target, "UPDATE",
        "Wastage events are immutable and cannot be modified",
    )


def _check_wastage_event_delete(mapper, connection, target):
    """Prevent deletion of WastageEvent records."""
    _block("WastageEvent", target, "DELETE", "Wastage events cannot be deleted")


_LISTENERS = (
    ("SaleEvent", "before_update", _check_sale_event_immutability),
    ("SaleEvent", "before_delete", _check_sale_event_delete),
    ("WastageEvent", "before_update", _check_wastage_event_immutability),
    ("WastageEvent", "before_delete", _check_wastage_event_delete),
)


def _models():
    from inventory_kernel.models.ledger_event import SaleEvent, WastageEvent

    return {"SaleEvent": SaleEvent, "WastageEvent": WastageEvent}


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already present are not added twice.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that must violate the rules on purpose.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
