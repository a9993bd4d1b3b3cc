"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_config()`` is the only way services and scripts obtain
    settings.  YAML loading and environment overlay are internal to
    ``inventory_config.loader``.

Architecture position:
    Configuration sits above ``inventory_kernel``.  The kernel never
    imports this package; ``inventory_config.bridges`` translates settings
    into kernel constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- INVENTORY_CONFIG names a missing file.
    - ``ValueError`` -- a setting is out of range or wrongly typed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from inventory_config.loader import load_settings
from inventory_config.schema import InventorySettings

__all__ = ["InventorySettings", "get_active_config", "reset_active_config"]

_logger = logging.getLogger("inventory_kernel.config")

_active: InventorySettings | None = None
_lock = threading.Lock()


def get_active_config(path: Path | None = None) -> InventorySettings:
    """Return the process-wide settings, loading them on first use."""
    global _active
    with _lock:
        if _active is None:
            _active = load_settings(path)
            _logger.info(
                "config_loaded",
                extra={
                    "backend": _active.database_url.split(":", 1)[0],
                    "log_level": _active.log_level,
                    "code_prefix": _active.code_prefix,
                },
            )
        return _active


def reset_active_config() -> None:
    """Forget the memoized settings. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None
