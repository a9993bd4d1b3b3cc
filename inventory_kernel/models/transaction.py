"""
Module: inventory_kernel.models.transaction
Responsibility: ORM persistence for the append-only stock movement ledger.
    One row per accepted checkout or checkin.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    LEDGER_APPEND_ONLY -- rows are never updated or deleted.  Enforced by
        ORM listeners (db/immutability.py) and database triggers
        (db/triggers.py).
    REFERENCED_ITEM_RETENTION -- item_id is a RESTRICT foreign key; an item
        with ledger rows cannot be deleted.
    quantity > 0 and kind in {checkout, checkin} (check constraints).
    (item_id, item_seq) is unique; item_seq orders an item's movements.

Audit relevance:
    actor_name is a snapshot taken at movement time so that history survives
    renames in the external user directory.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, UUIDString
from inventory_kernel.db.types import long_text_type, name_type, short_code_type


class TransactionKind(str, Enum):
    """Direction of a stock movement."""

    CHECKOUT = "checkout"  # available decreases
    CHECKIN = "checkin"  # available increases


class InventoryTransaction(Base):
    """
    An immutable record of one accepted stock movement.

    Contract:
        Inserted only by LedgerStore.append inside the MovementEngine's
        savepoint, together with the matching availability update.

    Guarantees:
        - Never modified or removed after insert.
        - created_at is non-decreasing in item_seq order for a given item.
    """

    __tablename__ = "inventory_transactions"

    __table_args__ = (
        UniqueConstraint("item_id", "item_seq", name="uq_transaction_item_seq"),
        CheckConstraint("quantity > 0", name="ck_transaction_quantity_positive"),
        CheckConstraint(
            "kind IN ('checkout', 'checkin')",
            name="ck_transaction_kind",
        ),
        Index("idx_transaction_item", "item_id"),
        Index("idx_transaction_actor", "actor_id"),
        Index("idx_transaction_created_at", "created_at"),
        Index("idx_transaction_kind", "kind"),
    )

    item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Username at movement time
    actor_name: Mapped[str] = mapped_column(name_type(), nullable=False)

    # TransactionKind value
    kind: Mapped[str] = mapped_column(short_code_type(), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    note: Mapped[str | None] = mapped_column(long_text_type(), nullable=True)

    # Position in the item's movement sequence (1-based)
    item_seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    item: Mapped["Item"] = relationship("Item", lazy="select")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<InventoryTransaction {self.kind} x{self.quantity} "
            f"item={self.item_id} seq={self.item_seq}>"
        )
