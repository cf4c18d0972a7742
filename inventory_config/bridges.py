"""
Bridges -- turn ``InventorySettings`` into wired kernel objects.

Responsibility:
    The one place that knows both the settings schema and the kernel's
    constructors.  The kernel never imports ``inventory_config``; callers
    that want a ready engine go through ``build_inventory_engine``.
"""

from __future__ import annotations

import logging

from inventory_config.schema import InventorySettings
from inventory_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
)
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.clock import Clock
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.inventory_engine import InventoryEngine


def log_level_of(settings: InventorySettings) -> int:
    return logging.getLevelName(settings.logging.level.upper())


def init_store(settings: InventorySettings) -> None:
    """Create the SQLAlchemy engine from settings and, if asked, the tables."""
    store = settings.store
    init_engine_from_url(
        store.database_url,
        echo=store.echo,
        pool_size=store.pool_size,
        max_overflow=store.max_overflow,
        pool_timeout=store.pool_timeout_seconds,
        pool_recycle=store.pool_recycle_seconds,
        statement_timeout_ms=store.statement_timeout_ms,
    )
    if store.create_tables:
        create_tables()


def build_inventory_engine(
    settings: InventorySettings,
    clock: Clock | None = None,
    configure_logs: bool = True,
) -> InventoryEngine:
    """
    Wire logging, the store and the ledger guards, and return an engine.

    Postconditions:
        - The module-level SQLAlchemy engine is initialized.
        - Ledger immutability listeners are registered.
    """
    if configure_logs:
        configure_logging(level=log_level_of(settings))
    init_store(settings)
    register_immutability_listeners()

    retry = settings.retry
    return InventoryEngine(
        get_session_factory(),
        clock=clock,
        read_attempts=retry.read_attempts,
        read_backoff_seconds=retry.backoff_seconds,
        read_max_backoff_seconds=retry.max_backoff_seconds,
    )
