"""
ItemCatalog -- item identity, metadata and total quantity.

Responsibility:
    Resolves items by id or code, creates them with a unique scannable
    code, applies partial metadata/total edits, and deletes items that
    have no ledger history.  Never changes quantity_available.

Architecture position:
    Kernel > Services -- flush-only; the caller owns commit/rollback.

Invariants enforced:
    QUANTITY_BOUNDS -- a total edit may not drop below the units currently
        available (nor below 1).
    ENGINE_OWNS_AVAILABILITY -- no code path here writes
        quantity_available after insert.
    REFERENCED_ITEM_RETENTION -- delete() refuses items with ledger rows.

Failure modes:
    - ItemNotFoundError: identifier matches neither an id nor a code.
    - ValidationError: empty name, non-positive total, bad attributes,
      over-long text.
    - DuplicateCodeError: a supplied code is taken, or generated codes
      collided on every attempt.
    - ItemReferencedError: delete of an item with ledger history.

Audit relevance:
    created_by_id / updated_by_id record which actor made each catalog
    change; item_created, item_updated and item_deleted are logged.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.types import (
    MAX_ITEM_CODE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_SHORT_CODE_LENGTH,
    MAX_TEXT_LENGTH,
)
from inventory_kernel.domain.attributes import merge_attributes, validate_attributes
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import Actor, ItemPatch, ItemSnapshot, ItemSpec
from inventory_kernel.domain.movement_rules import validate_quantity
from inventory_kernel.exceptions import (
    DuplicateCodeError,
    ItemNotFoundError,
    ItemReferencedError,
    ValidationError,
)
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import InventoryTransaction
from inventory_kernel.services.base import BaseService
from inventory_kernel.utils.codes import (
    DEFAULT_CODE_LENGTH,
    DEFAULT_CODE_PREFIX,
    generate_item_code,
)

logger = get_logger("services.catalog")

# Attempts at a fresh generated code before giving up
MAX_CODE_ATTEMPTS = 3


def _parse_uuid(identifier: UUID | str) -> UUID | None:
    if isinstance(identifier, UUID):
        return identifier
    try:
        return UUID(str(identifier))
    except ValueError:
        return None


def _required_text(field: str, value: Any, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "is required")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(field, f"must be at most {max_length} characters")
    return value


def _optional_text(field: str, value: Any, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(field, "must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(field, f"must be at most {max_length} characters")
    return value or None


class ItemCatalog(BaseService):
    """
    Catalog operations on items.

    Contract:
        Returns ItemSnapshot DTOs.  resolve() is the only method that hands
        out an ORM Item, for use by MovementEngine inside the same session.
    """

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        code_prefix: str = DEFAULT_CODE_PREFIX,
        code_length: int = DEFAULT_CODE_LENGTH,
    ):
        super().__init__(session, clock)
        self.code_prefix = code_prefix
        self.code_length = code_length

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, identifier: UUID | str, for_update: bool = False) -> Item | None:
        """
        Look an item up by internal id, falling back to its code.

        Rows are always re-read from the database so a long-lived session
        never acts on a stale quantity.
        """
        if identifier is None or (isinstance(identifier, str) and not identifier.strip()):
            return None

        conditions = []
        item_id = _parse_uuid(identifier)
        if item_id is not None:
            conditions.append(Item.id == item_id)
        if isinstance(identifier, str):
            conditions.append(Item.code == identifier.strip())

        for condition in conditions:
            stmt = select(Item).where(condition).execution_options(populate_existing=True)
            if for_update:
                stmt = stmt.with_for_update()
            item = self.session.execute(stmt).scalar_one_or_none()
            if item is not None:
                return item
        return None

    def resolve(self, identifier: UUID | str, for_update: bool = False) -> Item:
        item = self.find(identifier, for_update=for_update)
        if item is None:
            raise ItemNotFoundError(str(identifier))
        return item

    def get(self, identifier: UUID | str) -> ItemSnapshot:
        return ItemSnapshot.from_model(self.resolve(identifier))

    def transaction_count(self, item_id: UUID) -> int:
        return self.session.execute(
            select(func.count(InventoryTransaction.id)).where(
                InventoryTransaction.item_id == item_id
            )
        ).scalar_one()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, spec: ItemSpec, actor: Actor) -> ItemSnapshot:
        """
        Create an item with quantity_available = quantity_total.

        A caller-supplied code is used as given; otherwise one is generated.
        """
        name = _required_text("name", spec.name, MAX_NAME_LENGTH)
        total = validate_quantity(spec.quantity_total, field="quantity_total")
        item_type = _required_text("item_type", spec.item_type, MAX_SHORT_CODE_LENGTH)
        category = _required_text("category", spec.category, MAX_SHORT_CODE_LENGTH)
        location = _optional_text("location", spec.location, MAX_NAME_LENGTH)
        description = _optional_text("description", spec.description, MAX_TEXT_LENGTH)
        attributes = validate_attributes(spec.attributes)

        supplied_code = _optional_text("code", spec.code, MAX_ITEM_CODE_LENGTH)
        attempts = 1 if supplied_code else MAX_CODE_ATTEMPTS
        now = self.clock.now()

        code = supplied_code
        for attempt in range(1, attempts + 1):
            code = supplied_code or generate_item_code(self.code_prefix, self.code_length)
            item = Item(
                code=code,
                name=name,
                item_type=item_type,
                category=category,
                location=location,
                description=description,
                attributes=attributes,
                quantity_initial=total,
                quantity_total=total,
                quantity_available=total,
                movement_seq=0,
                created_at=now,
                updated_at=now,
                created_by_id=actor.id,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(item)
                    self.session.flush()
            except IntegrityError:
                if not self._code_exists(code):
                    raise
                logger.warning(
                    "item_code_collision",
                    extra={"item_code": code, "attempt": attempt, "generated": not supplied_code},
                )
                continue

            logger.info(
                "item_created",
                extra={
                    "item_id": str(item.id),
                    "item_code": code,
                    "quantity_total": total,
                    "category": category,
                },
            )
            return ItemSnapshot.from_model(item)

        raise DuplicateCodeError(code)

    def _code_exists(self, code: str) -> bool:
        return (
            self.session.execute(select(Item.id).where(Item.code == code)).first()
            is not None
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, identifier: UUID | str, patch: ItemPatch, actor: Actor) -> ItemSnapshot:
        """
        Apply the supplied fields.  quantity_available is never touched.

        Raises:
            ValidationError: invalid field, or new total below the units
                currently available.
        """
        item = self.resolve(identifier, for_update=True)
        changes = patch.changes()
        if not changes:
            return ItemSnapshot.from_model(item)

        applied: dict[str, Any] = {}
        if "name" in changes:
            applied["name"] = _required_text("name", changes["name"], MAX_NAME_LENGTH)
        for field in ("item_type", "category"):
            if field in changes:
                applied[field] = _required_text(field, changes[field], MAX_SHORT_CODE_LENGTH)
        if "location" in changes:
            applied["location"] = _optional_text("location", changes["location"], MAX_NAME_LENGTH)
        if "description" in changes:
            applied["description"] = _optional_text(
                "description", changes["description"], MAX_TEXT_LENGTH
            )
        if "attributes" in changes:
            applied["attributes"] = merge_attributes(item.attributes, changes["attributes"])
        if "quantity_total" in changes:
            total = validate_quantity(changes["quantity_total"], field="quantity_total")
            if total < item.quantity_available:
                logger.warning(
                    "item_total_rejected",
                    extra={
                        "invariant": KernelInvariant.QUANTITY_BOUNDS.value,
                        "item_id": str(item.id),
                        "requested_total": total,
                        "quantity_available": item.quantity_available,
                    },
                )
                raise ValidationError(
                    "quantity_total",
                    f"must be at least the {item.quantity_available} units currently available",
                )
            applied["quantity_total"] = total

        for field, value in applied.items():
            setattr(item, field, value)
        item.updated_at = self.clock.now()
        item.updated_by_id = actor.id
        self.session.flush()

        logger.info(
            "item_updated",
            extra={"item_id": str(item.id), "item_code": item.code, "fields": sorted(applied)},
        )
        return ItemSnapshot.from_model(item)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(self, identifier: UUID | str, actor: Actor) -> None:
        """
        Delete an item that has no ledger history.

        Hard block: there is no archival path for referenced items.
        """
        item = self.resolve(identifier, for_update=True)
        count = self.transaction_count(item.id)
        if count:
            logger.warning(
                "item_delete_rejected",
                extra={
                    "invariant": KernelInvariant.REFERENCED_ITEM_RETENTION.value,
                    "item_id": str(item.id),
                    "transaction_count": count,
                },
            )
            raise ItemReferencedError(item_id=str(item.id), transaction_count=count)

        item_id, code = item.id, item.code
        try:
            with self.session.begin_nested():
                self.session.delete(item)
                self.session.flush()
        except IntegrityError as exc:
            # A movement committed between the count and the delete
            raise ItemReferencedError(item_id=str(item_id)) from exc

        logger.info(
            "item_deleted",
            extra={"item_id": str(item_id), "item_code": code, "actor_id": str(actor.id)},
        )
