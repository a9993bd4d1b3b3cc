"""
Module: inventory_kernel.selectors.transaction_selector
Responsibility: Read access to the movement ledger -- filtered,
    reverse-chronological pages and short recent-activity feeds.
Architecture position: Kernel > Selectors.  Imports models/ and
    domain/dtos.py only.

Ordering:
    Newest first by created_at, then by item_seq (which breaks ties between
    movements of one item), then by id so pages are stable.
"""

from uuid import UUID

from sqlalchemy import Select, func, select

from inventory_kernel.domain.dtos import (
    TransactionFilter,
    TransactionPage,
    TransactionRecord,
    as_utc,
)
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind
from inventory_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_PAGE_SIZE = 500


def _apply_filters(stmt: Select, filters: TransactionFilter | None) -> Select:
    if filters is None:
        return stmt
    if filters.kind is not None:
        try:
            kind = TransactionKind(filters.kind)
        except ValueError:
            raise ValidationError("kind", f"unknown transaction kind {filters.kind!r}") from None
        stmt = stmt.where(InventoryTransaction.kind == kind.value)
    if filters.actor_id is not None:
        stmt = stmt.where(InventoryTransaction.actor_id == filters.actor_id)
    if filters.item_id is not None:
        stmt = stmt.where(InventoryTransaction.item_id == filters.item_id)
    return stmt


class TransactionSelector(BaseSelector):
    """Ledger queries returning TransactionRecord DTOs."""

    def __init__(self, session, max_page_size: int = DEFAULT_MAX_PAGE_SIZE):
        super().__init__(session)
        self.max_page_size = max_page_size

    @staticmethod
    def _joined() -> Select:
        return select(InventoryTransaction, Item.code, Item.name).join(
            Item, Item.id == InventoryTransaction.item_id
        )

    @staticmethod
    def _newest_first(stmt: Select) -> Select:
        return stmt.order_by(
            InventoryTransaction.created_at.desc(),
            InventoryTransaction.item_seq.desc(),
            InventoryTransaction.id.desc(),
        )

    @staticmethod
    def _to_record(txn: InventoryTransaction, item_code: str, item_name: str) -> TransactionRecord:
        return TransactionRecord(
            id=txn.id,
            item_id=txn.item_id,
            item_code=item_code,
            item_name=item_name,
            actor_id=txn.actor_id,
            actor_name=txn.actor_name,
            kind=TransactionKind(txn.kind),
            quantity=txn.quantity,
            note=txn.note,
            item_seq=txn.item_seq,
            created_at=as_utc(txn.created_at),
        )

    def _records(self, stmt: Select) -> tuple[TransactionRecord, ...]:
        return tuple(
            self._to_record(txn, code, name) for txn, code, name in self.session.execute(stmt)
        )

    def count(self, filters: TransactionFilter | None = None) -> int:
        stmt = _apply_filters(select(func.count(InventoryTransaction.id)), filters)
        return self.session.execute(stmt).scalar_one()

    def list_transactions(
        self,
        filters: TransactionFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> TransactionPage:
        """
        One page of the ledger, newest first, with the filtered total.

        Raises:
            ValidationError: page < 1, limit < 1, or limit above the
                configured maximum.
        """
        offset = self._validate_page(page, limit, self.max_page_size)
        total = self.count(filters)
        stmt = self._newest_first(_apply_filters(self._joined(), filters))
        rows = self._records(stmt.offset(offset).limit(limit))
        return TransactionPage(transactions=rows, total=total, page=page, limit=limit)

    def recent(self, limit: int) -> tuple[TransactionRecord, ...]:
        """Latest ``limit`` movements across all items."""
        return self._records(self._newest_first(self._joined()).limit(limit))

    def recent_for_item(self, item_id: UUID, limit: int) -> tuple[TransactionRecord, ...]:
        stmt = self._newest_first(
            self._joined().where(InventoryTransaction.item_id == item_id)
        ).limit(limit)
        return self._records(stmt)
