"""
InventorySettings schema.

The parsed, validated form of the YAML configuration.  The loader builds
one of these from the packaged defaults, an optional override file and
the environment; nothing downstream reads YAML or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class InventorySettings:
    """Runtime settings for the inventory kernel."""

    database_url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: int = 30

    code_prefix: str = "INV"
    code_length: int = 8

    default_page_size: int = 50
    max_page_size: int = 500

    recent_activity_limit: int = 10
    item_history_limit: int = 10
    top_n: int = 5

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        for name in (
            "pool_size",
            "pool_timeout",
            "sqlite_busy_timeout",
            "default_page_size",
            "max_page_size",
            "recent_activity_limit",
            "item_history_limit",
            "top_n",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.max_overflow < 0:
            raise ValueError(f"max_overflow must be >= 0, got {self.max_overflow}")
        if not 4 <= self.code_length <= 32:
            raise ValueError(f"code_length must be between 4 and 32, got {self.code_length}")
        if not self.code_prefix or not self.code_prefix.isalnum():
            raise ValueError(f"code_prefix must be alphanumeric, got {self.code_prefix!r}")
        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) exceeds "
                f"max_page_size ({self.max_page_size})"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level!r}")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
