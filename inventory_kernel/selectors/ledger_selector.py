"""
Module: inventory_kernel.selectors.ledger_selector
Responsibility: Ledger replay and verification.  Rebuilds each item's
    availability from quantity_initial and its movements in item_seq order
    and compares the result with the stored counter.
Architecture position: Kernel > Selectors.

Invariants verified:
    LEDGER_REPLAY -- replayed availability equals quantity_available.
    The number of ledger rows for an item equals its movement_seq.

Audit relevance:
    A non-empty mismatch list means the counter and the ledger disagree,
    which the movement engine's atomic unit should make impossible.
"""

from itertools import groupby
from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import LedgerVerification, ReplayMismatch
from inventory_kernel.domain.movement_rules import replay_available
from inventory_kernel.exceptions import ItemNotFoundError
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.ledger")


class LedgerSelector(BaseSelector):
    """Replay-based consistency checks."""

    def movements_for_item(self, item_id: UUID) -> list[tuple[TransactionKind, int]]:
        rows = self.session.execute(
            select(InventoryTransaction.kind, InventoryTransaction.quantity)
            .where(InventoryTransaction.item_id == item_id)
            .order_by(InventoryTransaction.item_seq.asc())
        )
        return [(TransactionKind(kind), quantity) for kind, quantity in rows]

    def replay_item(self, item_id: UUID) -> int:
        """
        Replayed availability of one item.

        Raises:
            ItemNotFoundError: No such item.
        """
        initial = self.session.execute(
            select(Item.quantity_initial).where(Item.id == item_id)
        ).scalar_one_or_none()
        if initial is None:
            raise ItemNotFoundError(str(item_id))
        return replay_available(initial, self.movements_for_item(item_id))

    def verify(self) -> LedgerVerification:
        """Replay every item and collect the ones that disagree."""
        items = self.session.execute(
            select(
                Item.id,
                Item.code,
                Item.quantity_initial,
                Item.quantity_available,
                Item.movement_seq,
            ).order_by(Item.id)
        ).all()

        movements = self.session.execute(
            select(
                InventoryTransaction.item_id,
                InventoryTransaction.kind,
                InventoryTransaction.quantity,
            ).order_by(InventoryTransaction.item_id, InventoryTransaction.item_seq)
        )
        by_item = {
            item_id: [(kind, quantity) for _, kind, quantity in rows]
            for item_id, rows in groupby(movements, key=lambda row: row[0])
        }

        mismatches = []
        replayed_total = 0
        for item_id, code, initial, available, movement_seq in items:
            item_movements = by_item.get(item_id, [])
            replayed_total += len(item_movements)
            replayed = replay_available(initial, item_movements)
            if replayed != available or len(item_movements) != movement_seq:
                mismatches.append(
                    ReplayMismatch(
                        item_id=item_id,
                        item_code=code,
                        stored_available=available,
                        replayed_available=replayed,
                        transaction_count=len(item_movements),
                        movement_seq=movement_seq,
                    )
                )

        result = LedgerVerification(
            items_checked=len(items),
            transactions_replayed=replayed_total,
            mismatches=tuple(mismatches),
        )
        if mismatches:
            logger.error(
                "ledger_verification_failed",
                extra={
                    "invariant": KernelInvariant.LEDGER_REPLAY.value,
                    "items_checked": result.items_checked,
                    "mismatch_count": len(mismatches),
                    "item_codes": [m.item_code for m in mismatches],
                },
            )
        else:
            logger.info(
                "ledger_verified",
                extra={
                    "items_checked": result.items_checked,
                    "transactions_replayed": result.transactions_replayed,
                },
            )
        return result
