"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way runtime code obtains settings.
    No other component reads settings files or ``INVENTORY_*`` environment
    variables directly.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``; ``inventory_config.bridges`` turns
    settings into kernel objects.

Resolution order (later wins):
    1. bundled ``defaults.yaml``
    2. the file passed as ``config_path``, else the file named by
       ``INVENTORY_CONFIG``
    3. ``INVENTORY_DATABASE_URL`` and ``INVENTORY_LOG_LEVEL``

Audit relevance:
    Every successful call emits an ``INVENTORY_CONFIG_TRACE`` log entry with
    the settings checksum and source.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from inventory_config.loader import (
    DEFAULTS_PATH,
    load_yaml_file,
    merge_settings,
    parse_settings,
)
from inventory_config.schema import (
    InventorySettings,
    LoggingSettings,
    RetrySettings,
    StoreSettings,
)

_logger = logging.getLogger("inventory_kernel.config")

CONFIG_PATH_ENV = "INVENTORY_CONFIG"
DATABASE_URL_ENV = "INVENTORY_DATABASE_URL"
LOG_LEVEL_ENV = "INVENTORY_LOG_LEVEL"


def get_active_settings(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventorySettings:
    """
    The ONLY public settings entrypoint.

    Raises:
        FileNotFoundError: ``config_path`` (or ``INVENTORY_CONFIG``) names a
            missing file.
        ValueError: a value fails validation.
    """
    env = os.environ if environ is None else environ
    data = load_yaml_file(DEFAULTS_PATH)

    source = "defaults"
    override_path = config_path or env.get(CONFIG_PATH_ENV)
    if override_path:
        data = merge_settings(data, load_yaml_file(Path(override_path)))
        source = str(override_path)

    env_overrides: dict[str, dict[str, str]] = {}
    if env.get(DATABASE_URL_ENV):
        env_overrides.setdefault("store", {})["database_url"] = env[DATABASE_URL_ENV]
    if env.get(LOG_LEVEL_ENV):
        env_overrides.setdefault("logging", {})["level"] = env[LOG_LEVEL_ENV]
    if env_overrides:
        data = merge_settings(data, env_overrides)

    settings = parse_settings(data)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "config_source": source,
            "checksum": settings.checksum,
            "env_overrides": sorted(
                f"{section}.{key}"
                for section, values in env_overrides.items()
                for key in values
            ),
        },
    )
    return settings


__all__ = [
    "get_active_settings",
    "InventorySettings",
    "StoreSettings",
    "RetrySettings",
    "LoggingSettings",
]
