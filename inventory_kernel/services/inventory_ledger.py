"""
InventoryLedger -- the kernel's external interface.

Responsibility:
    One object that an HTTP layer, CLI or test can call without managing
    sessions: every method opens its own session, runs one unit of work,
    commits or rolls back, and closes.  Authorization is the caller's job;
    the Actor passed in is trusted.

Architecture position:
    Kernel > Services -- outermost kernel seam.  Composes ItemCatalog,
    MovementEngine, LedgerStore and the selectors.

Failure modes:
    - Typed InventoryKernelError subclasses pass through unchanged.
    - Any other SQLAlchemyError is rolled back and raised as
      StorageFaultError(retryable=True).  The kernel never retries.
"""

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory_kernel.db.engine import session_scope
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    Actor,
    ItemDetail,
    ItemPage,
    ItemPatch,
    ItemSnapshot,
    ItemSpec,
    LedgerVerification,
    MovementResult,
    OverviewStats,
    TransactionFilter,
    TransactionPage,
    TransactionStats,
)
from inventory_kernel.exceptions import StorageFaultError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.item_selector import ItemSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.report_selector import ReportSelector
from inventory_kernel.selectors.transaction_selector import TransactionSelector
from inventory_kernel.services.catalog_service import ItemCatalog
from inventory_kernel.services.ledger_store import LedgerStore
from inventory_kernel.services.movement_engine import MovementEngine
from inventory_kernel.utils.codes import DEFAULT_CODE_LENGTH, DEFAULT_CODE_PREFIX

logger = get_logger("services.inventory_ledger")


@dataclass(frozen=True)
class LedgerOptions:
    """Tunables for the facade; built from InventorySettings by inventory_config."""

    code_prefix: str = DEFAULT_CODE_PREFIX
    code_length: int = DEFAULT_CODE_LENGTH
    default_page_size: int = 50
    max_page_size: int = 500
    recent_activity_limit: int = 10
    item_history_limit: int = 10
    top_n: int = 5


class InventoryLedger:
    """
    Session-per-call facade over the inventory kernel.

    Usage:
        ledger = InventoryLedger(get_session_factory())
        item = ledger.create_item(ItemSpec(name="Patch cable 2m", quantity_total=5), manager)
        result = ledger.checkout(item.code, user, quantity=3)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        options: LedgerOptions | None = None,
    ):
        self._session_factory = session_factory
        self.clock = clock or SystemClock()
        self.options = options or LedgerOptions()

    @contextmanager
    def _unit(self, operation: str, readonly: bool = False) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory, readonly=readonly) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error(
                "storage_fault",
                extra={"operation": operation, "readonly": readonly},
                exc_info=True,
            )
            raise StorageFaultError(operation=operation, detail=str(exc)) from exc

    def _catalog(self, session: Session) -> ItemCatalog:
        return ItemCatalog(
            session,
            self.clock,
            code_prefix=self.options.code_prefix,
            code_length=self.options.code_length,
        )

    def _limit(self, limit: int | None) -> int:
        return self.options.default_page_size if limit is None else limit

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def resolve_item(self, identifier: UUID | str) -> ItemSnapshot:
        with self._unit("resolve_item", readonly=True) as session:
            return self._catalog(session).get(identifier)

    def create_item(self, spec: ItemSpec, actor: Actor) -> ItemSnapshot:
        with self._unit("create_item") as session:
            return self._catalog(session).create(spec, actor)

    def update_item(self, identifier: UUID | str, patch: ItemPatch, actor: Actor) -> ItemSnapshot:
        with self._unit("update_item") as session:
            return self._catalog(session).update(identifier, patch, actor)

    def delete_item(self, identifier: UUID | str, actor: Actor) -> None:
        with self._unit("delete_item") as session:
            self._catalog(session).delete(identifier, actor)

    def list_items(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> ItemPage:
        with self._unit("list_items", readonly=True) as session:
            return ItemSelector(session, self.options.max_page_size).search(
                search, page, self._limit(limit)
            )

    def item_detail(self, identifier: UUID | str) -> ItemDetail:
        """Item snapshot with its latest ledger entries."""
        with self._unit("item_detail", readonly=True) as session:
            snapshot = self._catalog(session).get(identifier)
            recent = TransactionSelector(session).recent_for_item(
                snapshot.id, self.options.item_history_limit
            )
            return ItemDetail(item=snapshot, recent_transactions=recent)

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def _engine(self, session: Session) -> MovementEngine:
        return MovementEngine(
            session,
            self.clock,
            auto_commit=False,
            catalog=self._catalog(session),
        )

    def checkout(
        self,
        identifier: UUID | str,
        actor: Actor,
        quantity: int = 1,
        note: str | None = None,
    ) -> MovementResult:
        with self._unit("checkout") as session:
            return self._engine(session).checkout(identifier, actor, quantity, note)

    def checkin(
        self,
        identifier: UUID | str,
        actor: Actor,
        quantity: int = 1,
        note: str | None = None,
    ) -> MovementResult:
        with self._unit("checkin") as session:
            return self._engine(session).checkin(identifier, actor, quantity, note)

    # ------------------------------------------------------------------
    # Ledger queries and reports
    # ------------------------------------------------------------------

    def list_transactions(
        self,
        filters: TransactionFilter | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TransactionPage:
        with self._unit("list_transactions", readonly=True) as session:
            store = LedgerStore(session, self.clock, self.options.max_page_size)
            return store.query(filters, page, self._limit(limit))

    def user_history(self, actor_id: UUID, page: int = 1, limit: int | None = None) -> TransactionPage:
        """Ledger page restricted to one acting user."""
        return self.list_transactions(TransactionFilter(actor_id=actor_id), page, limit)

    def overview_stats(self) -> OverviewStats:
        with self._unit("overview_stats", readonly=True) as session:
            return ReportSelector(session).overview_stats(self.options.recent_activity_limit)

    def transaction_stats(self) -> TransactionStats:
        with self._unit("transaction_stats", readonly=True) as session:
            return ReportSelector(session).transaction_stats(
                self.clock.today_start(), self.options.top_n
            )

    def verify_ledger(self) -> LedgerVerification:
        with self._unit("verify_ledger", readonly=True) as session:
            return LedgerSelector(session).verify()
