"""
Tests for dashboard reports: overview totals and transaction statistics.
"""

from datetime import timedelta

from inventory_kernel.services.inventory_ledger import InventoryLedger, LedgerOptions


class TestOverviewStats:
    def test_empty_inventory(self, ledger):
        stats = ledger.overview_stats()
        assert stats.totals.item_count == 0
        assert stats.totals.quantity_total == 0
        assert stats.categories == ()
        assert stats.recent_activity == ()

    def test_totals_and_categories(self, ledger, make_item, user):
        cable = make_item(quantity_total=5, category="cable")
        make_item(quantity_total=3, category="cable")
        make_item(quantity_total=2, category="adapter")
        ledger.checkout(cable.id, user, quantity=4)

        stats = ledger.overview_stats()

        assert stats.totals.item_count == 3
        assert stats.totals.quantity_total == 10
        assert stats.totals.quantity_available == 6
        assert stats.totals.quantity_checked_out == 4
        assert [(c.category, c.item_count, c.quantity_available) for c in stats.categories] == [
            ("cable", 2, 4),
            ("adapter", 1, 2),
        ]

    def test_recent_activity_is_limited(self, session_factory, clock, make_item, user):
        ledger = InventoryLedger(
            session_factory, clock=clock, options=LedgerOptions(recent_activity_limit=2)
        )
        item = make_item(quantity_total=5)
        for _ in range(4):
            clock.advance(60)
            ledger.checkout(item.id, user)

        recent = ledger.overview_stats().recent_activity
        assert [t.item_seq for t in recent] == [4, 3]


class TestTransactionStats:
    def test_counts_and_today_boundary(self, ledger, make_item, clock, user):
        item = make_item(quantity_total=5)
        today = clock.now()

        clock.set_time(today - timedelta(days=1))
        ledger.checkout(item.id, user, quantity=2)
        clock.set_time(today.replace(hour=0, minute=0))
        ledger.checkout(item.id, user)
        clock.set_time(today)
        ledger.checkin(item.id, user)

        stats = ledger.transaction_stats()
        assert stats.total == 3
        assert stats.today == 2
        assert stats.checkouts == 2
        assert stats.checkins == 1

    def test_top_users_and_items(self, ledger, make_item, user, other_user):
        popular = make_item(quantity_total=5, name="Popular")
        quiet = make_item(quantity_total=5, name="Quiet")
        for _ in range(3):
            ledger.checkout(popular.id, other_user)
        ledger.checkout(quiet.id, user)

        stats = ledger.transaction_stats()

        assert [(r.key, r.label, r.transaction_count) for r in stats.top_users] == [
            (other_user.id, "tech.two", 3),
            (user.id, "tech.one", 1),
        ]
        assert [(r.key, r.label, r.transaction_count) for r in stats.top_items] == [
            (popular.id, "Popular", 3),
            (quiet.id, "Quiet", 1),
        ]

    def test_rankings_truncated(self, session_factory, clock, make_item, user):
        ledger = InventoryLedger(session_factory, clock=clock, options=LedgerOptions(top_n=1))
        for _ in range(3):
            ledger.checkout(make_item().id, user)
        assert len(ledger.transaction_stats().top_items) == 1
