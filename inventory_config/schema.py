"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing the runtime settings of the inventory engine.
Instances are produced only by ``inventory_config.loader.parse_settings``;
nothing else constructs them from raw data.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StoreSettings:
    """Database connection and pool settings."""

    database_url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout_seconds: int = 30
    pool_recycle_seconds: int = 1800
    statement_timeout_ms: int = 5000
    create_tables: bool = True


@dataclass(frozen=True)
class RetrySettings:
    """Backoff for reads that hit StoreUnavailableError.  Writes are never retried."""

    read_attempts: int = 3
    backoff_seconds: float = 0.05
    max_backoff_seconds: float = 1.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class InventorySettings:
    """The complete, validated runtime configuration."""

    store: StoreSettings = field(default_factory=StoreSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
