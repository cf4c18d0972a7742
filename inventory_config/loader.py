"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads YAML settings files, merges them over the bundled defaults and parses
the result into the frozen dataclasses of ``inventory_config.schema``.
Runtime callers go through ``inventory_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently falls
  back to a default.
* Every value is type- and range-checked before a settings object exists.
* ``compute_checksum`` is deterministic for identical merged settings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad value or unknown key  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from inventory_config.schema import (
    InventorySettings,
    LoggingSettings,
    RetrySettings,
    StoreSettings,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_SECTIONS = {
    "store": StoreSettings,
    "retry": RetrySettings,
    "logging": LoggingSettings,
}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge_settings(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Section-wise merge: keys in ``override`` replace keys in ``base``."""
    merged: dict[str, Any] = {k: dict(v or {}) for k, v in base.items()}
    for section, values in override.items():
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValueError(f"Section '{section}' must be a mapping")
        merged.setdefault(section, {}).update(values)
    return merged


def _check_value(section: str, key: str, value: Any, expected: Any) -> Any:
    where = f"{section}.{key}"
    if isinstance(expected, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{where} must be a boolean, got {value!r}")
        return value
    if isinstance(expected, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{where} must be an integer, got {value!r}")
        return value
    if isinstance(expected, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{where} must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, str) or not value:
        raise ValueError(f"{where} must be a non-empty string, got {value!r}")
    return value


def _parse_section(name: str, cls: type, raw: Mapping[str, Any]) -> Any:
    defaults = cls()
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")
    kwargs = {
        key: _check_value(name, key, value, getattr(defaults, key))
        for key, value in raw.items()
    }
    return cls(**kwargs)


def _validate(settings: InventorySettings) -> None:
    store, retry = settings.store, settings.retry
    for key in ("pool_size", "pool_timeout_seconds", "statement_timeout_ms"):
        if getattr(store, key) < 1:
            raise ValueError(f"store.{key} must be >= 1")
    if store.max_overflow < 0:
        raise ValueError("store.max_overflow must be >= 0")
    if retry.read_attempts < 1:
        raise ValueError("retry.read_attempts must be >= 1")
    if retry.backoff_seconds < 0 or retry.max_backoff_seconds < 0:
        raise ValueError("retry backoff values must be >= 0")
    if settings.logging.level.upper() not in _LOG_LEVELS:
        raise ValueError(f"logging.level '{settings.logging.level}' is not a log level")


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of the merged settings."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: Mapping[str, Any]) -> InventorySettings:
    """
    Parse a merged settings mapping into ``InventorySettings``.

    Raises:
        ValueError: unknown section/key, wrong type, or out-of-range value.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown settings section(s): {', '.join(unknown)}")
    sections = {
        name: _parse_section(name, cls, data.get(name) or {})
        for name, cls in _SECTIONS.items()
    }
    settings = InventorySettings(**sections, checksum=compute_checksum(data))
    _validate(settings)
    return settings
