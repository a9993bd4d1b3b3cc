"""
Tests for ItemCatalog: creation, code generation, lookup, edits, deletion.
"""

import re
from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import ItemPatch, ItemSpec
from inventory_kernel.exceptions import (
    DuplicateCodeError,
    ItemNotFoundError,
    ItemReferencedError,
    ValidationError,
)
from inventory_kernel.services import catalog_service
from inventory_kernel.services.catalog_service import MAX_CODE_ATTEMPTS, ItemCatalog
from inventory_kernel.services.movement_engine import MovementEngine

GENERATED_CODE = re.compile(r"^INV-[0-9A-F]{8}$")


@pytest.fixture
def catalog(session, clock):
    return ItemCatalog(session, clock)


class TestCreate:
    """New items start fully available with an immutable baseline."""

    def test_new_item_is_fully_available(self, catalog, session, clock, manager):
        item = catalog.create(
            ItemSpec(name="Patch cable 2m", quantity_total=5, location="Shelf A"), manager
        )
        session.commit()

        assert item.quantity_total == 5
        assert item.quantity_available == 5
        assert item.quantity_initial == 5
        assert item.quantity_checked_out == 0
        assert item.movement_seq == 0
        assert item.last_movement_at is None
        assert item.created_at == clock.now()
        assert item.location == "Shelf A"

    def test_defaults_for_type_and_category(self, catalog, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=1), manager)
        assert item.item_type == "rj45"
        assert item.category == "cable"

    def test_attributes_stored(self, catalog, session, manager):
        item = catalog.create(
            ItemSpec(
                name="Outdoor Cat6",
                quantity_total=3,
                attributes={"color": "black", "indoor_outdoor": "outdoor", "length": "10m"},
            ),
            manager,
        )
        session.commit()
        assert catalog.get(item.id).attributes["indoor_outdoor"] == "outdoor"

    def test_generated_code_format(self, catalog, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=1), manager)
        assert GENERATED_CODE.match(item.code)

    def test_custom_prefix_and_length(self, session, clock, manager):
        catalog = ItemCatalog(session, clock, code_prefix="CBL", code_length=6)
        item = catalog.create(ItemSpec(name="Cable", quantity_total=1), manager)
        assert re.match(r"^CBL-[0-9A-F]{6}$", item.code)

    def test_supplied_code_kept(self, catalog, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=1, code=" RJ45-0001 "), manager)
        assert item.code == "RJ45-0001"

    def test_duplicate_supplied_code_rejected(self, catalog, session, manager):
        catalog.create(ItemSpec(name="First", quantity_total=1, code="RJ45-0001"), manager)
        session.commit()

        with pytest.raises(DuplicateCodeError) as exc_info:
            catalog.create(ItemSpec(name="Second", quantity_total=1, code="RJ45-0001"), manager)
        assert exc_info.value.item_code == "RJ45-0001"

        # the outer transaction survives the failed insert
        session.rollback()
        assert catalog.get("RJ45-0001").name == "First"

    @pytest.mark.parametrize(
        ("spec", "field"),
        [
            (ItemSpec(name="", quantity_total=1), "name"),
            (ItemSpec(name="   ", quantity_total=1), "name"),
            (ItemSpec(name="Cable", quantity_total=0), "quantity_total"),
            (ItemSpec(name="Cable", quantity_total=-3), "quantity_total"),
            (ItemSpec(name="Cable", quantity_total=1, category=""), "category"),
            (ItemSpec(name="Cable", quantity_total=1, location="x" * 256), "location"),
            (ItemSpec(name="Cable", quantity_total=1, attributes={"a b": 1}), "attributes"),
        ],
    )
    def test_invalid_specs_rejected(self, catalog, manager, spec, field):
        with pytest.raises(ValidationError) as exc_info:
            catalog.create(spec, manager)
        assert exc_info.value.field == field

    def test_logs_item_created(self, catalog, manager, captured_logs):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=2), manager)
        created = [r for r in captured_logs() if r["message"] == "item_created"]
        assert len(created) == 1
        assert created[0]["item_code"] == item.code
        assert created[0]["quantity_total"] == 2


class TestGeneratedCodeCollisions:
    """Generated codes that collide are retried, supplied ones are not."""

    def test_collision_retried(self, catalog, session, manager, monkeypatch, captured_logs):
        catalog.create(ItemSpec(name="Taken", quantity_total=1, code="INV-AAAA0000"), manager)
        session.commit()

        codes = iter(["INV-AAAA0000", "INV-BBBB0000"])
        monkeypatch.setattr(catalog_service, "generate_item_code", lambda prefix, length: next(codes))

        item = catalog.create(ItemSpec(name="Fresh", quantity_total=1), manager)
        assert item.code == "INV-BBBB0000"
        assert any(r["message"] == "item_code_collision" for r in captured_logs())

    def test_gives_up_after_max_attempts(self, catalog, session, manager, monkeypatch):
        catalog.create(ItemSpec(name="Taken", quantity_total=1, code="INV-AAAA0000"), manager)
        session.commit()

        calls = []

        def _always_taken(prefix, length):
            calls.append(prefix)
            return "INV-AAAA0000"

        monkeypatch.setattr(catalog_service, "generate_item_code", _always_taken)

        with pytest.raises(DuplicateCodeError):
            catalog.create(ItemSpec(name="Fresh", quantity_total=1), manager)
        assert len(calls) == MAX_CODE_ATTEMPTS


class TestLookup:
    def test_by_code_and_by_id(self, catalog, session, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=1), manager)
        session.commit()

        assert catalog.get(item.code).id == item.id
        assert catalog.get(item.id).code == item.code
        assert catalog.get(str(item.id)).code == item.code

    def test_unknown_identifier(self, catalog):
        with pytest.raises(ItemNotFoundError) as exc_info:
            catalog.resolve("INV-NOPE0000")
        assert exc_info.value.identifier == "INV-NOPE0000"

    def test_unknown_uuid(self, catalog):
        with pytest.raises(ItemNotFoundError):
            catalog.resolve(uuid4())

    def test_blank_identifier_finds_nothing(self, catalog):
        assert catalog.find("  ") is None
        assert catalog.find(None) is None


class TestUpdate:
    """Edits touch metadata and total, never quantity_available."""

    def test_metadata_fields(self, catalog, session, clock, manager):
        item = catalog.create(
            ItemSpec(name="Cable", quantity_total=5, attributes={"color": "blue", "length": "2m"}),
            manager,
        )
        session.commit()
        clock.advance(60)

        updated = catalog.update(
            item.code,
            ItemPatch(
                name="Cable 3m",
                location="Shelf B",
                attributes={"length": "3m", "color": None},
            ),
            manager,
        )
        session.commit()

        assert updated.name == "Cable 3m"
        assert updated.location == "Shelf B"
        assert dict(updated.attributes) == {"length": "3m"}
        assert updated.quantity_available == 5
        assert updated.updated_at == clock.now()

    def test_raising_total_keeps_available(self, catalog, session, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        updated = catalog.update(item.id, ItemPatch(quantity_total=8), manager)
        session.commit()

        assert updated.quantity_total == 8
        assert updated.quantity_available == 5
        assert updated.quantity_initial == 5
        assert updated.quantity_checked_out == 3

    def test_total_below_available_rejected(self, catalog, session, clock, manager, user):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        session.commit()
        MovementEngine(session, clock).checkout(item.id, user, quantity=3)

        with pytest.raises(ValidationError) as exc_info:
            catalog.update(item.id, ItemPatch(quantity_total=1), manager)
        assert exc_info.value.field == "quantity_total"
        session.rollback()

        updated = catalog.update(item.id, ItemPatch(quantity_total=2), manager)
        session.commit()
        assert updated.quantity_total == 2
        assert updated.quantity_available == 2

    def test_zero_total_rejected(self, catalog, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        with pytest.raises(ValidationError):
            catalog.update(item.id, ItemPatch(quantity_total=0), manager)

    def test_empty_patch_is_noop(self, catalog, manager):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        unchanged = catalog.update(item.id, ItemPatch(), manager)
        assert unchanged.name == item.name
        assert unchanged.quantity_total == 5
        assert unchanged.updated_at == item.updated_at

    def test_unknown_item(self, catalog, manager):
        with pytest.raises(ItemNotFoundError):
            catalog.update("INV-NOPE0000", ItemPatch(name="x"), manager)

    def test_non_mapping_attributes_rejected(self, ledger, make_item, manager):
        item = make_item(quantity_total=5, attributes={"color": "blue"})

        with pytest.raises(ValidationError) as exc_info:
            ledger.update_item(item.id, ItemPatch(attributes="color=blue"), manager)
        assert exc_info.value.field == "attributes"
        assert dict(ledger.resolve_item(item.id).attributes) == {"color": "blue"}


class TestDelete:
    def test_unreferenced_item_deleted(self, catalog, session, manager, captured_logs):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        session.commit()

        catalog.delete(item.code, manager)
        session.commit()

        with pytest.raises(ItemNotFoundError):
            catalog.resolve(item.id)
        assert any(r["message"] == "item_deleted" for r in captured_logs())

    def test_referenced_item_kept(self, catalog, session, clock, manager, user):
        item = catalog.create(ItemSpec(name="Cable", quantity_total=5), manager)
        session.commit()
        engine = MovementEngine(session, clock)
        engine.checkout(item.id, user, quantity=1)
        engine.checkin(item.id, user, quantity=1)

        with pytest.raises(ItemReferencedError) as exc_info:
            catalog.delete(item.id, manager)
        assert exc_info.value.transaction_count == 2
        session.rollback()

        assert catalog.get(item.id).quantity_available == 5
