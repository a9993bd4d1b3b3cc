"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    the acting user (Actor), catalog inputs (ItemSpec, ItemPatch), catalog
    and ledger outputs (ItemSnapshot, MovementReceipt, TransactionRecord),
    paging envelopes and report shapes.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are
    boundary converters invoked only from services and selectors.

Invariants enforced:
    Services and selectors return DTOs, never ORM entities, so callers
    cannot flush changes to engine-owned fields by accident.

Failure modes:
    - ValueError on an Actor without a username.
    - ValueError on a page envelope with page < 1 or limit < 1.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from uuid import UUID

from inventory_kernel.models.item import DEFAULT_CATEGORY, DEFAULT_ITEM_TYPE
from inventory_kernel.models.transaction import TransactionKind

if TYPE_CHECKING:
    from inventory_kernel.models.item import Item as ItemModel


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a stored timestamp to aware UTC (SQLite returns naive)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _freeze(values: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


class ActorRole(str, Enum):
    """Permission level supplied by the external auth layer."""

    MANAGER = "manager"
    USER = "user"


@dataclass(frozen=True)
class Actor:
    """
    A pre-authenticated acting user.

    The kernel performs no authorization; role is carried for callers that
    gate manager-only operations before invoking it.
    """

    id: UUID
    username: str
    role: ActorRole = ActorRole.USER

    def __post_init__(self) -> None:
        if not self.username or not self.username.strip():
            raise ValueError("Actor requires a non-empty username")

    @property
    def is_manager(self) -> bool:
        return self.role == ActorRole.MANAGER


@dataclass(frozen=True)
class ItemSpec:
    """Input for creating an item.  code=None means generate one."""

    name: str
    quantity_total: int
    item_type: str = DEFAULT_ITEM_TYPE
    category: str = DEFAULT_CATEGORY
    location: str | None = None
    description: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    code: str | None = None


@dataclass(frozen=True)
class ItemPatch:
    """
    Partial update of an item's total and metadata.

    Fields left as None are not touched.  There is deliberately no
    quantity_available field.
    """

    name: str | None = None
    item_type: str | None = None
    category: str | None = None
    location: str | None = None
    description: str | None = None
    attributes: Mapping[str, Any] | None = None
    quantity_total: int | None = None

    def changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("name", self.name),
                ("item_type", self.item_type),
                ("category", self.category),
                ("location", self.location),
                ("description", self.description),
                ("attributes", self.attributes),
                ("quantity_total", self.quantity_total),
            )
            if value is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True)
class ItemSnapshot:
    """Point-in-time view of an item."""

    id: UUID
    code: str
    name: str
    item_type: str
    category: str
    location: str | None
    description: str | None
    attributes: Mapping[str, Any]
    quantity_initial: int
    quantity_total: int
    quantity_available: int
    movement_seq: int
    last_movement_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None

    @property
    def quantity_checked_out(self) -> int:
        return self.quantity_total - self.quantity_available

    @classmethod
    def from_model(cls, item: ItemModel) -> ItemSnapshot:
        return cls(
            id=item.id,
            code=item.code,
            name=item.name,
            item_type=item.item_type,
            category=item.category,
            location=item.location,
            description=item.description,
            attributes=_freeze(item.attributes),
            quantity_initial=item.quantity_initial,
            quantity_total=item.quantity_total,
            quantity_available=item.quantity_available,
            movement_seq=item.movement_seq,
            last_movement_at=as_utc(item.last_movement_at),
            created_at=as_utc(item.created_at),
            updated_at=as_utc(item.updated_at),
        )


@dataclass(frozen=True)
class MovementReceipt:
    """Proof of one accepted movement, as returned to the caller."""

    transaction_id: UUID
    item_id: UUID
    item_code: str
    kind: TransactionKind
    quantity: int
    actor_id: UUID
    actor_name: str
    note: str | None
    item_seq: int
    created_at: datetime


@dataclass(frozen=True)
class MovementResult:
    item: ItemSnapshot
    receipt: MovementReceipt


@dataclass(frozen=True)
class TransactionRecord:
    """A ledger entry joined with the item's display fields."""

    id: UUID
    item_id: UUID
    item_code: str
    item_name: str
    actor_id: UUID
    actor_name: str
    kind: TransactionKind
    quantity: int
    note: str | None
    item_seq: int
    created_at: datetime

    @property
    def signed_quantity(self) -> int:
        return -self.quantity if self.kind == TransactionKind.CHECKOUT else self.quantity


@dataclass(frozen=True)
class TransactionFilter:
    """Optional ledger filters; None means no constraint."""

    kind: TransactionKind | None = None
    actor_id: UUID | None = None
    item_id: UUID | None = None


def _page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


@dataclass(frozen=True)
class TransactionPage:
    transactions: tuple[TransactionRecord, ...]
    total: int
    page: int
    limit: int

    def __post_init__(self) -> None:
        if self.page < 1 or self.limit < 1:
            raise ValueError("page and limit must be positive")

    @property
    def pages(self) -> int:
        return _page_count(self.total, self.limit)


@dataclass(frozen=True)
class ItemListing:
    """Catalog list row: snapshot plus how many checkouts it has seen."""

    item: ItemSnapshot
    total_checkouts: int


@dataclass(frozen=True)
class ItemPage:
    items: tuple[ItemListing, ...]
    total: int
    page: int
    limit: int

    def __post_init__(self) -> None:
        if self.page < 1 or self.limit < 1:
            raise ValueError("page and limit must be positive")

    @property
    def pages(self) -> int:
        return _page_count(self.total, self.limit)


@dataclass(frozen=True)
class ItemDetail:
    item: ItemSnapshot
    recent_transactions: tuple[TransactionRecord, ...]


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ItemTotals:
    item_count: int
    quantity_total: int
    quantity_available: int
    quantity_checked_out: int


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    item_count: int
    quantity_available: int


@dataclass(frozen=True)
class OverviewStats:
    totals: ItemTotals
    categories: tuple[CategoryBreakdown, ...]
    recent_activity: tuple[TransactionRecord, ...]


@dataclass(frozen=True)
class RankedCount:
    """One row of a top-N ranking (user or item)."""

    key: UUID
    label: str
    transaction_count: int


@dataclass(frozen=True)
class TransactionStats:
    total: int
    today: int
    checkouts: int
    checkins: int
    top_users: tuple[RankedCount, ...]
    top_items: tuple[RankedCount, ...]


@dataclass(frozen=True)
class ReplayMismatch:
    """An item whose stored availability disagrees with its ledger."""

    item_id: UUID
    item_code: str
    stored_available: int
    replayed_available: int
    transaction_count: int
    movement_seq: int


@dataclass(frozen=True)
class LedgerVerification:
    items_checked: int
    transactions_replayed: int
    mismatches: tuple[ReplayMismatch, ...]

    @property
    def is_consistent(self) -> bool:
        return not self.mismatches
