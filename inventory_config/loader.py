"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads YAML configuration fragments and parses them into an
``InventorySettings`` instance.  Layers, lowest precedence first:

1. ``defaults.yaml`` shipped inside this package
2. an optional override file (argument, or ``INVENTORY_CONFIG``)
3. environment variables (``DATABASE_URL``, ``INVENTORY_DB_ECHO``,
   ``INVENTORY_LOG_LEVEL``)

Failure modes
-------------
* Missing override file -> ``FileNotFoundError`` propagates.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Out-of-range or wrongly typed values -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import InventorySettings

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_TRUE_STRINGS = ("1", "true", "yes", "on")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def merge_fragments(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_fragments(dict(merged[key]), value)
        else:
            merged[key] = value
    return merged


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    raise ValueError(f"Cannot parse boolean from {value!r}")


def parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def parse_settings(data: Mapping[str, Any]) -> InventorySettings:
    """Build ``InventorySettings`` from a merged configuration mapping."""
    database = data.get("database") or {}
    items = data.get("items") or {}
    paging = data.get("paging") or {}
    reporting = data.get("reporting") or {}
    logging_section = data.get("logging") or {}

    return InventorySettings(
        database_url=str(database["url"]),
        echo=parse_bool(database.get("echo", False)),
        pool_size=parse_int(database.get("pool_size", 20), "database.pool_size"),
        max_overflow=parse_int(database.get("max_overflow", 10), "database.max_overflow"),
        pool_timeout=parse_int(database.get("pool_timeout", 30), "database.pool_timeout"),
        sqlite_busy_timeout=parse_int(
            database.get("sqlite_busy_timeout", 30), "database.sqlite_busy_timeout"
        ),
        code_prefix=str(items.get("code_prefix", "INV")),
        code_length=parse_int(items.get("code_length", 8), "items.code_length"),
        default_page_size=parse_int(
            paging.get("default_page_size", 50), "paging.default_page_size"
        ),
        max_page_size=parse_int(paging.get("max_page_size", 500), "paging.max_page_size"),
        recent_activity_limit=parse_int(
            reporting.get("recent_activity_limit", 10), "reporting.recent_activity_limit"
        ),
        item_history_limit=parse_int(
            reporting.get("item_history_limit", 10), "reporting.item_history_limit"
        ),
        top_n=parse_int(reporting.get("top_n", 5), "reporting.top_n"),
        log_level=str(logging_section.get("level", "INFO")).upper(),
    )


def apply_environment(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Overlay recognised environment variables onto a config mapping."""
    overrides: dict[str, Any] = {}
    if environ.get("DATABASE_URL"):
        overrides.setdefault("database", {})["url"] = environ["DATABASE_URL"]
    if environ.get("INVENTORY_DB_ECHO"):
        overrides.setdefault("database", {})["echo"] = environ["INVENTORY_DB_ECHO"]
    if environ.get("INVENTORY_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = environ["INVENTORY_LOG_LEVEL"]
    return merge_fragments(data, overrides)


def load_settings(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventorySettings:
    """
    Load settings from defaults, an optional override file and the environment.

    Args:
        path: Override YAML file.  Falls back to ``INVENTORY_CONFIG``.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if environ is None else environ
    data = load_yaml_file(DEFAULTS_PATH)

    override_path = path or (Path(env["INVENTORY_CONFIG"]) if env.get("INVENTORY_CONFIG") else None)
    if override_path is not None:
        data = merge_fragments(data, load_yaml_file(override_path))

    return parse_settings(apply_environment(data, env))
