"""Read-only query selectors."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.item_selector import ItemSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.report_selector import ReportSelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "BaseSelector",
    "ItemSelector",
    "LedgerSelector",
    "ReportSelector",
    "TransactionSelector",
]
