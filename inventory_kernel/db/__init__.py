"""Database layer - engine, base classes, error translation, immutability."""

from inventory_kernel.db.base import UUID, Base, TimestampedBase, UTCDateTime, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
)
from inventory_kernel.db.errors import translate_store_errors

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session_factory",
    "create_tables",
    "translate_store_errors",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UTCDateTime",
    "UUID",
]
