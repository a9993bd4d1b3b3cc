"""
MovementEngine -- atomic, bound-checked checkout and checkin.

Responsibility:
    Applies a stock movement as one unit: the conditional availability
    update on the item and the matching ledger append either both happen
    or neither does.

Architecture position:
    Kernel > Services -- the only writer of Item.quantity_available.
    Coordinates ItemCatalog (resolution) and LedgerStore (append); holds no
    state of its own.

Algorithm (checkout shown; checkin mirrors it with the opposite bound):

    1. Resolve the item by id or code          -> ItemNotFoundError
    2. Pre-check qty <= available               -> InsufficientStockError
    3. SAVEPOINT
         UPDATE items
            SET quantity_available = quantity_available - :qty,
                movement_seq = movement_seq + 1,
                last_movement_at = max(last_movement_at, :now)
          WHERE id = :id AND quantity_available >= :qty
         rowcount == 0  -> re-read, raise InsufficientStockError
         INSERT ledger row (item_seq = movement_seq)
       RELEASE (or ROLLBACK TO on any error)
    4. Commit when auto_commit, return item snapshot + receipt

    The WHERE clause is the authoritative guard.  Under PostgreSQL READ
    COMMITTED a concurrent updater blocks on the row lock and re-evaluates
    the predicate against the committed row; on SQLite the write transaction
    began IMMEDIATE, so step 1 already reads committed state.  Different
    items never share a lock.

Invariants enforced:
    QUANTITY_BOUNDS -- the guarded UPDATE cannot take available outside
        [0, total]; check constraints back it up.
    MOVEMENT_ATOMICITY -- the savepoint makes update + append all-or-nothing
        even when the caller owns the outer transaction.
    ENGINE_OWNS_AVAILABILITY -- a Core UPDATE, which bypasses the ORM
        listeners that block every other writer.

Failure modes:
    - ValidationError: quantity not a positive integer, or over-long note.
    - ItemNotFoundError: unknown identifier (or item deleted mid-flight).
    - InsufficientStockError / OverCapacityError: bound violated; reports
      the current available / maximum acceptable figures.
    - StorageFaultError (retryable): any SQLAlchemy failure.  The savepoint
      and, with auto_commit, the session are rolled back first.

Audit relevance:
    Every attempt logs movement_started followed by exactly one of
    movement_completed, movement_rejected or movement_failed, all bound to
    one correlation_id.
"""

import time
from uuid import UUID, uuid4

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError

from inventory_kernel.db.types import MAX_TEXT_LENGTH
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import (
    Actor,
    ItemSnapshot,
    MovementReceipt,
    MovementResult,
    as_utc,
)
from inventory_kernel.domain.movement_rules import (
    apply_movement,
    check_checkin,
    check_checkout,
    signed_delta,
    validate_quantity,
)
from inventory_kernel.exceptions import (
    InventoryKernelError,
    ItemNotFoundError,
    StorageFaultError,
    ValidationError,
)
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import TransactionKind
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.catalog_service import ItemCatalog
from inventory_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.movement")


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    if not isinstance(note, str):
        raise ValidationError("note", "must be a string")
    note = note.strip()
    if len(note) > MAX_TEXT_LENGTH:
        raise ValidationError("note", f"must be at most {MAX_TEXT_LENGTH} characters")
    return note or None


class MovementEngine(BaseService):
    """
    Checkout and checkin over one session.

    Contract:
        With ``auto_commit=True`` (default) each movement commits on success
        and rolls the session back on failure.  With ``auto_commit=False``
        the movement stays in the caller's transaction; a failed movement
        leaves that transaction as it was before the call.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        auto_commit: bool = True,
        catalog: ItemCatalog | None = None,
        ledger: LedgerStore | None = None,
    ):
        super().__init__(session, clock)
        self.auto_commit = auto_commit
        self.catalog = catalog or ItemCatalog(session, self.clock)
        self.ledger = ledger or LedgerStore(session, self.clock)

    def checkout(
        self,
        item: UUID | str,
        actor: Actor,
        quantity: int = 1,
        note: str | None = None,
    ) -> MovementResult:
        """Take ``quantity`` units out of stock.  All or nothing."""
        return self._move(TransactionKind.CHECKOUT, item, actor, quantity, note)

    def checkin(
        self,
        item: UUID | str,
        actor: Actor,
        quantity: int = 1,
        note: str | None = None,
    ) -> MovementResult:
        """Return ``quantity`` units to stock, up to the amount checked out."""
        return self._move(TransactionKind.CHECKIN, item, actor, quantity, note)

    # ------------------------------------------------------------------

    def _move(
        self,
        kind: TransactionKind,
        identifier: UUID | str,
        actor: Actor,
        quantity: int,
        note: str | None,
    ) -> MovementResult:
        start = time.monotonic()
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor.id),
            operation=kind.value,
        ):
            logger.info(
                "movement_started",
                extra={"identifier": str(identifier), "quantity": quantity},
            )
            try:
                validate_quantity(quantity)
                note = _clean_note(note)
                item = self.catalog.resolve(identifier)
                apply_movement(
                    kind,
                    str(item.id),
                    quantity,
                    item.quantity_total,
                    item.quantity_available,
                )
                result = self._apply(kind, item, actor, quantity, note)
                if self.auto_commit:
                    self.session.commit()
            except InventoryKernelError as exc:
                if self.auto_commit:
                    self.session.rollback()
                logger.warning(
                    "movement_rejected",
                    extra={
                        "reason": exc.code,
                        "quantity": quantity,
                        "duration_ms": round((time.monotonic() - start) * 1000, 2),
                    },
                )
                raise
            except SQLAlchemyError as exc:
                if self.auto_commit:
                    self.session.rollback()
                logger.error(
                    "movement_failed",
                    extra={
                        "invariant": KernelInvariant.MOVEMENT_ATOMICITY.value,
                        "quantity": quantity,
                        "duration_ms": round((time.monotonic() - start) * 1000, 2),
                    },
                    exc_info=True,
                )
                raise StorageFaultError(operation=kind.value, detail=str(exc)) from exc

            logger.info(
                "movement_completed",
                extra={
                    "item_id": str(result.item.id),
                    "transaction_id": str(result.receipt.transaction_id),
                    "quantity": quantity,
                    "quantity_available": result.item.quantity_available,
                    "item_seq": result.receipt.item_seq,
                    "duration_ms": round((time.monotonic() - start) * 1000, 2),
                },
            )
            return result

    def _apply(
        self,
        kind: TransactionKind,
        item: Item,
        actor: Actor,
        quantity: int,
        note: str | None,
    ) -> MovementResult:
        """Guarded update plus ledger append inside one savepoint."""
        item_id = item.id
        now = self.clock.now()

        if kind == TransactionKind.CHECKOUT:
            guard = Item.quantity_available >= quantity
        else:
            guard = (Item.quantity_total - Item.quantity_available) >= quantity

        with self.session.begin_nested():
            outcome = self.session.execute(
                update(Item)
                .where(Item.id == item_id, guard)
                .values(
                    quantity_available=Item.quantity_available + signed_delta(kind, quantity),
                    movement_seq=Item.movement_seq + 1,
                    last_movement_at=case(
                        (Item.last_movement_at > now, Item.last_movement_at),
                        else_=now,
                    ),
                    updated_at=now,
                    updated_by_id=actor.id,
                )
                .execution_options(synchronize_session=False)
            )

            fresh = self._reload(item_id)
            if outcome.rowcount != 1:
                self._raise_for_lost_race(kind, item_id, quantity, fresh)

            entry = self.ledger.append(
                item_id=item_id,
                actor=actor,
                kind=kind,
                quantity=quantity,
                item_seq=fresh.movement_seq,
                note=note,
                created_at=fresh.last_movement_at,
            )

        snapshot = ItemSnapshot.from_model(fresh)
        receipt = MovementReceipt(
            transaction_id=entry.transaction_id,
            item_id=item_id,
            item_code=fresh.code,
            kind=kind,
            quantity=quantity,
            actor_id=actor.id,
            actor_name=actor.username,
            note=note,
            item_seq=fresh.movement_seq,
            created_at=as_utc(entry.created_at),
        )
        return MovementResult(item=snapshot, receipt=receipt)

    def _reload(self, item_id: UUID) -> Item | None:
        return self.session.execute(
            select(Item).where(Item.id == item_id).execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @staticmethod
    def _raise_for_lost_race(
        kind: TransactionKind,
        item_id: UUID,
        quantity: int,
        fresh: Item | None,
    ) -> None:
        """The guarded UPDATE matched nothing: report against current state."""
        if fresh is None:
            raise ItemNotFoundError(str(item_id))
        logger.info(
            "movement_guard_rejected",
            extra={
                "invariant": KernelInvariant.QUANTITY_BOUNDS.value,
                "quantity_total": fresh.quantity_total,
                "quantity_available": fresh.quantity_available,
            },
        )
        if kind == TransactionKind.CHECKOUT:
            check_checkout(str(item_id), quantity, fresh.quantity_available)
        else:
            check_checkin(str(item_id), quantity, fresh.quantity_total, fresh.quantity_available)
        # Bound holds on re-read: the row changed between the two statements.
        raise StorageFaultError(
            operation=kind.value,
            detail=f"conditional update on item {item_id} matched no row",
        )
