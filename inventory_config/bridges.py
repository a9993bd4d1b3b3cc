"""
Bridges from InventorySettings to kernel objects.

The kernel never imports inventory_config.  These helpers are the one
place where settings become engine arguments, logging setup and
LedgerOptions.
"""

from __future__ import annotations

from inventory_config.schema import InventorySettings
from inventory_kernel.db.engine import get_session_factory, init_engine_from_settings
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.clock import Clock
from inventory_kernel.logging_config import configure_logging
from inventory_kernel.services.inventory_ledger import InventoryLedger, LedgerOptions


def ledger_options_from_settings(settings: InventorySettings) -> LedgerOptions:
    return LedgerOptions(
        code_prefix=settings.code_prefix,
        code_length=settings.code_length,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
        recent_activity_limit=settings.recent_activity_limit,
        item_history_limit=settings.item_history_limit,
        top_n=settings.top_n,
    )


def build_ledger(settings: InventorySettings, clock: Clock | None = None) -> InventoryLedger:
    """
    Wire up a ready-to-use InventoryLedger.

    Configures logging, initializes the engine and registers the ORM
    immutability listeners.  Tables are not created here; run
    ``scripts/ledger_admin.py init-db`` or call create_tables().
    """
    configure_logging(level=settings.log_level.upper())
    init_engine_from_settings(settings)
    register_immutability_listeners()
    return InventoryLedger(
        get_session_factory(),
        clock=clock,
        options=ledger_options_from_settings(settings),
    )
