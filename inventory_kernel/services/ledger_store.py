"""
LedgerStore -- the append-only movement ledger.

Responsibility:
    Persists one InventoryTransaction per accepted movement and answers
    paginated ledger queries.  Nothing here updates or deletes a row.

Architecture position:
    Kernel > Services -- flush-only.  append() is called by MovementEngine
    inside its savepoint; query() delegates to TransactionSelector.

Invariants enforced:
    LEDGER_APPEND_ONLY -- there is no update or delete method; the ORM
        listeners and database triggers reject any attempt from elsewhere.

Failure modes:
    - SQLAlchemyError when the database rejects or cannot take the insert.
      The engine maps it to StorageFaultError after its savepoint rolls back.
"""

from datetime import datetime
from typing import NamedTuple
from uuid import UUID

from inventory_kernel.domain.dtos import Actor, TransactionFilter, TransactionPage, as_utc
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind
from inventory_kernel.selectors.transaction_selector import (
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
    TransactionSelector,
)
from inventory_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class AppendedEntry(NamedTuple):
    transaction_id: UUID
    created_at: datetime


class LedgerStore(BaseService):
    """Append and query ledger transactions."""

    def __init__(self, session, clock=None, max_page_size: int = DEFAULT_MAX_PAGE_SIZE):
        super().__init__(session, clock)
        self.max_page_size = max_page_size

    def append(
        self,
        *,
        item_id: UUID,
        actor: Actor,
        kind: TransactionKind,
        quantity: int,
        item_seq: int,
        note: str | None = None,
        created_at: datetime | None = None,
    ) -> AppendedEntry:
        """
        Insert a ledger row and flush it.

        created_at defaults to the clock; the engine passes the item's
        movement timestamp so entries stay non-decreasing per item.
        """
        txn = InventoryTransaction(
            item_id=item_id,
            actor_id=actor.id,
            actor_name=actor.username,
            kind=TransactionKind(kind).value,
            quantity=quantity,
            note=note,
            item_seq=item_seq,
            created_at=created_at or self.clock.now(),
        )
        self.session.add(txn)
        self.session.flush()

        logger.debug(
            "ledger_appended",
            extra={
                "transaction_id": str(txn.id),
                "kind": txn.kind,
                "quantity": quantity,
                "item_seq": item_seq,
            },
        )
        return AppendedEntry(transaction_id=txn.id, created_at=as_utc(txn.created_at))

    def query(
        self,
        filters: TransactionFilter | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> TransactionPage:
        """Reverse-chronological page of matching transactions with total."""
        return TransactionSelector(self.session, self.max_page_size).list_transactions(
            filters, page, limit
        )
