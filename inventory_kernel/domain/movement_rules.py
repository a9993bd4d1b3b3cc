"""
Movement rules -- pure bound checks for checkout and checkin.

Responsibility:
    The arithmetic of the bounded counter ``0 <= available <= total``:
    quantity validation, the checkout and checkin guards, the transition
    itself, and ledger replay.  MovementEngine evaluates these against a
    snapshot before touching storage, then re-asserts the same bounds in
    its conditional UPDATE.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    QUANTITY_BOUNDS -- check_checkout / check_checkin reject any movement
        that would leave the interval [0, total].
    LEDGER_REPLAY -- replay_available folds a movement sequence back into
        an availability figure.
"""

from collections.abc import Iterable

from inventory_kernel.exceptions import (
    InsufficientStockError,
    OverCapacityError,
    ValidationError,
)
from inventory_kernel.models.transaction import TransactionKind


def validate_quantity(quantity, field: str = "quantity") -> int:
    """
    Require a positive integer.

    bool is rejected even though it subclasses int.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(field, f"must be an integer, got {type(quantity).__name__}")
    if quantity <= 0:
        raise ValidationError(field, f"must be positive, got {quantity}")
    return quantity


def max_checkin(total: int, available: int) -> int:
    """Largest quantity a checkin may return (units currently out)."""
    return total - available


def check_checkout(item_id: str, quantity: int, available: int) -> None:
    """All-or-nothing: the whole quantity must be available."""
    if quantity > available:
        raise InsufficientStockError(item_id=item_id, requested=quantity, available=available)


def check_checkin(item_id: str, quantity: int, total: int, available: int) -> None:
    limit = max_checkin(total, available)
    if quantity > limit:
        raise OverCapacityError(item_id=item_id, requested=quantity, max_acceptable=limit)


def signed_delta(kind: TransactionKind, quantity: int) -> int:
    return -quantity if kind == TransactionKind.CHECKOUT else quantity


def apply_movement(
    kind: TransactionKind,
    item_id: str,
    quantity: int,
    total: int,
    available: int,
) -> int:
    """
    Validate one movement and return the new availability.

    Raises:
        ValidationError: quantity is not a positive integer.
        InsufficientStockError: checkout exceeds available.
        OverCapacityError: checkin exceeds total - available.
    """
    validate_quantity(quantity)
    if kind == TransactionKind.CHECKOUT:
        check_checkout(item_id, quantity, available)
    else:
        check_checkin(item_id, quantity, total, available)
    return available + signed_delta(kind, quantity)


def replay_available(
    initial_available: int,
    movements: Iterable[tuple[TransactionKind, int]],
) -> int:
    """
    Fold (kind, quantity) pairs, in ledger order, onto a starting availability.

    No bound checks: replay reports what the ledger says, and verification
    compares the result with the stored figure.
    """
    available = initial_available
    for kind, quantity in movements:
        available += signed_delta(TransactionKind(kind), quantity)
    return available
