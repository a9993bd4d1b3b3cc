"""Pure domain layer: clock, DTOs, movement rules, attribute validation."""

from inventory_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from inventory_kernel.domain.dtos import (
    Actor,
    ActorRole,
    ItemPatch,
    ItemSnapshot,
    ItemSpec,
    MovementReceipt,
    MovementResult,
    TransactionFilter,
    TransactionPage,
    TransactionRecord,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "SequentialClock",
    "Actor",
    "ActorRole",
    "ItemSpec",
    "ItemPatch",
    "ItemSnapshot",
    "MovementReceipt",
    "MovementResult",
    "TransactionFilter",
    "TransactionPage",
    "TransactionRecord",
]
