"""
ORM-level ledger protection (layer 1 of 2).

Layer 1 is this module: SQLAlchemy event listeners that reject forbidden
changes before any SQL is sent.  Layer 2 is db/triggers.py: database
triggers that reject the same changes when the ORM is bypassed (raw SQL,
bulk statements, direct database access).

    session.flush()
         |
         v
    [before_flush]  --> referenced Item deletes     --> ItemReferencedError
         |
         v
    [before_update] --> ledger rows, engine-owned   --> ImmutabilityViolationError
         |              Item fields
         v
    [before_delete] --> ledger rows                 --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

    Entity                 | Rule
    -----------------------|--------------------------------------------------
    InventoryTransaction   | never updated, never deleted
    Item                   | code, quantity_initial, quantity_available,
                           | movement_seq, last_movement_at never change
                           | through an ORM flush; delete blocked while any
                           | ledger row references the item

The MovementEngine changes availability with a Core UPDATE statement, which
does not pass through mapper events; that is the only sanctioned writer.

Usage:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup, idempotent
"""

from sqlalchemy import event, func, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from inventory_kernel.exceptions import ImmutabilityViolationError, ItemReferencedError
from inventory_kernel.invariants import KernelInvariant
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Item columns written only at INSERT or by the movement engine's UPDATE
ITEM_PROTECTED_FIELDS = frozenset(
    {
        "code",
        "quantity_initial",
        "quantity_available",
        "movement_seq",
        "last_movement_at",
    }
)


def _check_item_deletion_before_flush(session, flush_context, instances):
    """
    Block deletion of items that have ledger history.

    Runs in SessionEvents.before_flush so the check happens before the
    flush plan is final.
    """
    from inventory_kernel.models.item import Item
    from inventory_kernel.models.transaction import InventoryTransaction

    for obj in list(session.deleted):
        if not isinstance(obj, Item):
            continue

        with session.no_autoflush:
            count = session.execute(
                select(func.count(InventoryTransaction.id)).where(
                    InventoryTransaction.item_id == obj.id
                )
            ).scalar_one()

        if count:
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "invariant": KernelInvariant.REFERENCED_ITEM_RETENTION.value,
                    "entity_type": "Item",
                    "entity_id": str(obj.id),
                    "operation": "DELETE",
                    "transaction_count": count,
                },
            )
            raise ItemReferencedError(item_id=str(obj.id), transaction_count=count)


def _check_transaction_immutability(mapper, connection, target):
    """Ledger rows are never modified."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": KernelInvariant.LEDGER_APPEND_ONLY.value,
            "entity_type": "InventoryTransaction",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryTransaction",
        entity_id=str(target.id),
        reason="Ledger transactions are immutable and cannot be modified",
    )


def _check_transaction_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": KernelInvariant.LEDGER_APPEND_ONLY.value,
            "entity_type": "InventoryTransaction",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryTransaction",
        entity_id=str(target.id),
        reason="Ledger transactions cannot be deleted",
    )


def _check_item_protected_fields(mapper, connection, target):
    """
    Reject ORM flushes that change engine-owned or identity fields.

    Descriptive fields and quantity_total remain editable; the catalog
    validates total edits itself.
    """
    changed = sorted(
        field
        for field in ITEM_PROTECTED_FIELDS
        if get_history(target, field).has_changes()
    )
    if not changed:
        return

    invariant = (
        KernelInvariant.ENGINE_OWNS_AVAILABILITY
        if "quantity_available" in changed
        else KernelInvariant.QUANTITY_BOUNDS
    )
    logger.error(
        "immutability_violation_blocked",
        extra={
            "invariant": invariant.value,
            "entity_type": "Item",
            "entity_id": str(target.id),
            "operation": "UPDATE",
            "fields": changed,
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Item",
        entity_id=str(target.id),
        reason=f"Field(s) {changed} cannot be modified through the catalog",
    )


def _listeners():
    from inventory_kernel.models.item import Item
    from inventory_kernel.models.transaction import InventoryTransaction

    return [
        (Session, "before_flush", _check_item_deletion_before_flush),
        (InventoryTransaction, "before_update", _check_transaction_immutability),
        (InventoryTransaction, "before_delete", _check_transaction_delete),
        (Item, "before_update", _check_item_protected_fields),
    ]


def register_immutability_listeners() -> None:
    """
    Register the ledger protection listeners.

    Idempotent: listeners already registered are left alone.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the ledger protection listeners.

    WARNING: Only for tests that need to reach the database-level triggers.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)


def listeners_registered() -> bool:
    return all(
        event.contains(target, event_name, listener_fn)
        for target, event_name, listener_fn in _listeners()
    )
