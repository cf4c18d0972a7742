"""
Module: inventory_kernel.db.errors
Responsibility: Translate driver and pool failures raised by SQLAlchemy into
    the kernel's typed errors, so callers never see a raw DBAPI exception for
    an infrastructure problem.
Architecture position: Kernel > DB.  May import from exceptions and
    logging_config only.

Mapping:
    OperationalError / InterfaceError   -> StoreUnavailableError
        (connection loss, statement timeout, SQLite lock timeout)
    SQLSTATE 40001 / 40P01              -> ConflictError
        (serialization failure, deadlock: safe to retry once)
    IntegrityError (not handled at the call site) -> ConflictError
    sqlalchemy.exc.TimeoutError         -> StoreUnavailableError (pool exhausted)
    DisconnectionError                  -> StoreUnavailableError

Kernel errors pass through untouched.  Other DBAPI errors (ProgrammingError,
DataError) are programming faults and propagate unchanged.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from inventory_kernel.exceptions import (
    ConflictError,
    InventoryKernelError,
    StoreUnavailableError,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.errors")

CONFLICT_SQLSTATES: frozenset[str] = frozenset({"40001", "40P01"})


def sqlstate_of(exc: DBAPIError) -> str | None:
    """Return the SQLSTATE carried by the driver exception, if any."""
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


@contextmanager
def translate_store_errors(
    operation: str,
    entity_type: str = "Item",
    entity_id: object = None,
) -> Generator[None, None, None]:
    """Re-raise store failures inside the block as typed kernel errors."""
    try:
        yield
    except InventoryKernelError:
        raise
    except IntegrityError as exc:
        logger.warning(
            "store_constraint_conflict",
            extra={"operation": operation, "entity_type": entity_type},
        )
        raise ConflictError(
            entity_type, str(entity_id), f"constraint rejected write: {exc.orig}"
        ) from exc
    except (OperationalError, InterfaceError) as exc:
        sqlstate = sqlstate_of(exc)
        if sqlstate in CONFLICT_SQLSTATES:
            logger.warning(
                "store_concurrency_conflict",
                extra={"operation": operation, "sqlstate": sqlstate},
            )
            raise ConflictError(
                entity_type, str(entity_id), f"concurrent transaction aborted ({sqlstate})"
            ) from exc
        logger.error(
            "store_unavailable",
            extra={
                "operation": operation,
                "sqlstate": sqlstate,
                "connection_invalidated": exc.connection_invalidated,
            },
        )
        raise StoreUnavailableError(operation, str(exc.orig)) from exc
    except (PoolTimeoutError, DisconnectionError) as exc:
        logger.error("store_unavailable", extra={"operation": operation})
        raise StoreUnavailableError(operation, str(exc)) from exc
