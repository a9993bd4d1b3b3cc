"""ORM models for the inventory ledger."""

from inventory_kernel.models.item import DEFAULT_CATEGORY, DEFAULT_ITEM_TYPE, Item
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind

__all__ = [
    "Item",
    "InventoryTransaction",
    "TransactionKind",
    "DEFAULT_CATEGORY",
    "DEFAULT_ITEM_TYPE",
]
