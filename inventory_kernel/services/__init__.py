"""Kernel services: catalog, ledger store, movement engine and the facade."""

from inventory_kernel.services.base import BaseService
from inventory_kernel.services.catalog_service import ItemCatalog
from inventory_kernel.services.inventory_ledger import InventoryLedger, LedgerOptions
from inventory_kernel.services.ledger_store import AppendedEntry, LedgerStore
from inventory_kernel.services.movement_engine import MovementEngine

__all__ = [
    "AppendedEntry",
    "BaseService",
    "InventoryLedger",
    "ItemCatalog",
    "LedgerOptions",
    "LedgerStore",
    "MovementEngine",
]
