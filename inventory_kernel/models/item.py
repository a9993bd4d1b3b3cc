"""
Module: inventory_kernel.models.item
Responsibility: ORM persistence for catalog items -- the stock units whose
    availability the ledger tracks.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    QUANTITY_BOUNDS -- check constraints keep
        0 <= quantity_available <= quantity_total.
    ENGINE_OWNS_AVAILABILITY -- quantity_available is written only by the
        MovementEngine's conditional UPDATE; ORM flushes touching it are
        rejected by db/immutability.py.
    code is unique (uq_item_code) and never changes after insert.

Failure modes:
    - IntegrityError on duplicate code (mapped to DuplicateCodeError by
      ItemCatalog) or on a check-constraint breach.

Audit relevance:
    quantity_initial and movement_seq let auditors replay an item's ledger
    and confirm that every unit of availability change is justified.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase
from inventory_kernel.db.types import (
    item_code_type,
    long_text_type,
    name_type,
    short_code_type,
)

DEFAULT_ITEM_TYPE = "rj45"
DEFAULT_CATEGORY = "cable"


class Item(TrackedBase):
    """
    A stock-trackable unit type, identified by a scannable code.

    Contract:
        quantity_total is set at creation and changed only by an explicit
        catalog edit.  quantity_available changes only through checkout and
        checkin.  movement_seq counts the item's ledger entries.

    Guarantees:
        - 0 <= quantity_available <= quantity_total (check constraints).
        - code is unique and non-null.
    """

    __tablename__ = "items"

    __table_args__ = (
        UniqueConstraint("code", name="uq_item_code"),
        CheckConstraint("quantity_total >= 0", name="ck_item_total_non_negative"),
        CheckConstraint("quantity_available >= 0", name="ck_item_available_non_negative"),
        CheckConstraint(
            "quantity_available <= quantity_total",
            name="ck_item_available_within_total",
        ),
        CheckConstraint("movement_seq >= 0", name="ck_item_movement_seq_non_negative"),
        Index("idx_item_category", "category"),
        Index("idx_item_name", "name"),
    )

    # Scannable identity (printed on the label)
    code: Mapped[str] = mapped_column(item_code_type(), nullable=False)

    name: Mapped[str] = mapped_column(name_type(), nullable=False)

    item_type: Mapped[str] = mapped_column(
        short_code_type(),
        nullable=False,
        default=DEFAULT_ITEM_TYPE,
    )

    category: Mapped[str] = mapped_column(
        short_code_type(),
        nullable=False,
        default=DEFAULT_CATEGORY,
    )

    location: Mapped[str | None] = mapped_column(name_type(), nullable=True)

    description: Mapped[str | None] = mapped_column(long_text_type(), nullable=True)

    # Open key/value extension (length, color, cat_version, ...)
    attributes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Total at creation; replay starts here
    quantity_initial: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_total: Mapped[int] = mapped_column(Integer, nullable=False)

    quantity_available: Mapped[int] = mapped_column(Integer, nullable=False)

    # Number of ledger entries for this item; the latest entry's item_seq
    movement_seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    last_movement_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Item {self.code}: {self.name} "
            f"{self.quantity_available}/{self.quantity_total}>"
        )
