"""
Tests for the InventoryLedger facade: one committed unit of work per call.
"""

import pytest
from sqlalchemy.exc import OperationalError

from inventory_kernel.domain.dtos import ItemPatch, ItemSpec, TransactionFilter
from inventory_kernel.exceptions import (
    InsufficientStockError,
    ItemNotFoundError,
    ItemReferencedError,
    StorageFaultError,
    ValidationError,
)
from inventory_kernel.models.transaction import TransactionKind
from inventory_kernel.selectors.item_selector import ItemSelector
from inventory_kernel.services.inventory_ledger import InventoryLedger, LedgerOptions


class TestCatalogThroughFacade:
    def test_create_resolve_update_delete(self, ledger, manager):
        item = ledger.create_item(
            ItemSpec(name="Patch cable 2m", quantity_total=5, location="Shelf A"), manager
        )

        assert ledger.resolve_item(item.code).id == item.id
        updated = ledger.update_item(item.code, ItemPatch(quantity_total=6), manager)
        assert updated.quantity_total == 6
        assert updated.quantity_available == 5

        ledger.delete_item(item.id, manager)
        with pytest.raises(ItemNotFoundError):
            ledger.resolve_item(item.id)

    def test_configured_code_prefix(self, session_factory, clock, manager):
        ledger = InventoryLedger(
            session_factory, clock=clock, options=LedgerOptions(code_prefix="CBL")
        )
        item = ledger.create_item(ItemSpec(name="Cable", quantity_total=1), manager)
        assert item.code.startswith("CBL-")

    def test_delete_of_item_with_history_blocked(self, ledger, make_item, manager, user):
        item = make_item(quantity_total=2)
        ledger.checkout(item.code, user)

        with pytest.raises(ItemReferencedError):
            ledger.delete_item(item.code, manager)
        assert ledger.resolve_item(item.code).quantity_available == 1


class TestMovementsThroughFacade:
    def test_each_call_commits(self, ledger, make_item, user):
        item = make_item(quantity_total=5)

        ledger.checkout(item.code, user, quantity=3)
        ledger.checkin(item.id, user, quantity=1)

        stored = ledger.resolve_item(item.code)
        assert stored.quantity_available == 3
        assert stored.movement_seq == 2

    def test_rejection_changes_nothing(self, ledger, make_item, user):
        item = make_item(quantity_total=2)
        with pytest.raises(InsufficientStockError):
            ledger.checkout(item.code, user, quantity=3)

        stored = ledger.resolve_item(item.code)
        assert stored.quantity_available == 2
        assert ledger.list_transactions().total == 0

    def test_item_detail_lists_latest_first(self, session_factory, clock, make_item, user):
        ledger = InventoryLedger(
            session_factory, clock=clock, options=LedgerOptions(item_history_limit=2)
        )
        item = make_item(quantity_total=5)
        for _ in range(3):
            ledger.checkout(item.id, user)
            clock.advance(60)

        detail = ledger.item_detail(item.code)
        assert detail.item.quantity_available == 2
        assert [t.item_seq for t in detail.recent_transactions] == [3, 2]


class TestLedgerQueriesThroughFacade:
    def test_user_history(self, ledger, make_item, user, other_user):
        item = make_item(quantity_total=5)
        ledger.checkout(item.id, user)
        ledger.checkout(item.id, other_user, quantity=2)
        ledger.checkin(item.id, user)

        history = ledger.user_history(user.id)
        assert history.total == 2
        assert {t.actor_name for t in history.transactions} == {"tech.one"}

    def test_filter_by_kind_and_item(self, ledger, make_item, user):
        first = make_item(quantity_total=5)
        second = make_item(quantity_total=5)
        ledger.checkout(first.id, user, quantity=2)
        ledger.checkin(first.id, user)
        ledger.checkout(second.id, user)

        page = ledger.list_transactions(
            TransactionFilter(kind=TransactionKind.CHECKOUT, item_id=first.id)
        )
        assert page.total == 1
        assert page.transactions[0].quantity == 2

    def test_default_page_size_from_options(self, session_factory, clock, make_item, user):
        ledger = InventoryLedger(
            session_factory, clock=clock, options=LedgerOptions(default_page_size=2)
        )
        item = make_item(quantity_total=5)
        for _ in range(3):
            ledger.checkout(item.id, user)

        page = ledger.list_transactions()
        assert page.limit == 2
        assert len(page.transactions) == 2
        assert page.pages == 2

    def test_limit_above_maximum(self, ledger):
        with pytest.raises(ValidationError):
            ledger.list_transactions(limit=501)


class TestStorageFaults:
    def test_read_failure_surfaces_as_storage_fault(self, ledger, monkeypatch):
        def _fail(self, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(ItemSelector, "search", _fail)

        with pytest.raises(StorageFaultError) as exc_info:
            ledger.list_items()
        assert exc_info.value.operation == "list_items"
        assert exc_info.value.retryable is True
