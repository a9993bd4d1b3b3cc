"""
Module: inventory_kernel.selectors.report_selector
Responsibility: Dashboard aggregations over the catalog and ledger --
    item totals, category breakdown, recent activity and transaction
    statistics (today, by kind, top users, top items).
Architecture position: Kernel > Selectors.

Each figure is a separate query, so a report taken while movements commit
may mix two adjacent states.  Reports are advisory.
"""

from datetime import datetime

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import (
    CategoryBreakdown,
    ItemTotals,
    OverviewStats,
    RankedCount,
    TransactionStats,
)
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector


class ReportSelector(BaseSelector):
    """Read-only report queries."""

    def item_totals(self) -> ItemTotals:
        item_count, total, available = self.session.execute(
            select(
                func.count(Item.id),
                func.coalesce(func.sum(Item.quantity_total), 0),
                func.coalesce(func.sum(Item.quantity_available), 0),
            )
        ).one()
        return ItemTotals(
            item_count=item_count,
            quantity_total=int(total),
            quantity_available=int(available),
            quantity_checked_out=int(total) - int(available),
        )

    def category_breakdown(self) -> tuple[CategoryBreakdown, ...]:
        """Item count and available units per category, largest first."""
        item_count = func.count(Item.id).label("item_count")
        rows = self.session.execute(
            select(
                Item.category,
                item_count,
                func.coalesce(func.sum(Item.quantity_available), 0),
            )
            .group_by(Item.category)
            .order_by(item_count.desc(), Item.category.asc())
        )
        return tuple(
            CategoryBreakdown(category=category, item_count=count, quantity_available=int(avail))
            for category, count, avail in rows
        )

    def overview_stats(self, recent_limit: int = 10) -> OverviewStats:
        return OverviewStats(
            totals=self.item_totals(),
            categories=self.category_breakdown(),
            recent_activity=TransactionSelector(self.session).recent(recent_limit),
        )

    def _count_transactions(self, *conditions) -> int:
        stmt = select(func.count(InventoryTransaction.id))
        if conditions:
            stmt = stmt.where(*conditions)
        return self.session.execute(stmt).scalar_one()

    def top_users(self, limit: int = 5) -> tuple[RankedCount, ...]:
        """Actors with the most movements.  Label is their latest recorded name."""
        txn_count = func.count(InventoryTransaction.id).label("transaction_count")
        label = func.max(InventoryTransaction.actor_name).label("actor_name")
        rows = self.session.execute(
            select(InventoryTransaction.actor_id, label, txn_count)
            .group_by(InventoryTransaction.actor_id)
            .order_by(txn_count.desc(), label.asc())
            .limit(limit)
        )
        return tuple(
            RankedCount(key=actor_id, label=name, transaction_count=count)
            for actor_id, name, count in rows
        )

    def top_items(self, limit: int = 5) -> tuple[RankedCount, ...]:
        txn_count = func.count(InventoryTransaction.id).label("transaction_count")
        rows = self.session.execute(
            select(Item.id, Item.name, txn_count)
            .join(InventoryTransaction, InventoryTransaction.item_id == Item.id)
            .group_by(Item.id, Item.name)
            .order_by(txn_count.desc(), Item.name.asc())
            .limit(limit)
        )
        return tuple(
            RankedCount(key=item_id, label=name, transaction_count=count)
            for item_id, name, count in rows
        )

    def transaction_stats(self, today_start: datetime, top_n: int = 5) -> TransactionStats:
        """
        Ledger statistics.

        Args:
            today_start: Start of "today" in UTC, supplied by the caller's
                clock so tests can pin the boundary.
            top_n: Length of the user and item rankings.
        """
        return TransactionStats(
            total=self._count_transactions(),
            today=self._count_transactions(InventoryTransaction.created_at >= today_start),
            checkouts=self._count_transactions(
                InventoryTransaction.kind == TransactionKind.CHECKOUT.value
            ),
            checkins=self._count_transactions(
                InventoryTransaction.kind == TransactionKind.CHECKIN.value
            ),
            top_users=self.top_users(top_n),
            top_items=self.top_items(top_n),
        )
