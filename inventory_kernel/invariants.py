"""
Kernel Invariants Contract.

These invariants are structural law.  They are hardcoded in the movement
engine, the ORM listeners and the database triggers.  No setting may
override them.

This module exists solely to name the invariants.  Enforcement is spread
across MovementEngine, ItemCatalog, db/immutability.py, db/triggers.py and
the table check constraints; violations are logged with the invariant
value so they can be grepped.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    QUANTITY_BOUNDS = "quantity_bounds"
    """0 <= quantity_available <= quantity_total for every item at every
    observable time.  Enforced by the conditional UPDATE in MovementEngine,
    the catalog's total-edit guard and table check constraints."""

    MOVEMENT_ATOMICITY = "movement_atomicity"
    """The quantity mutation and its ledger append commit together or not
    at all.  Enforced by the SAVEPOINT unit in MovementEngine."""

    LEDGER_APPEND_ONLY = "ledger_append_only"
    """Ledger transactions are never updated or deleted.  Enforced by ORM
    listeners and database triggers."""

    ENGINE_OWNS_AVAILABILITY = "engine_owns_availability"
    """quantity_available changes only through MovementEngine.  ORM flushes
    that touch it are rejected."""

    REFERENCED_ITEM_RETENTION = "referenced_item_retention"
    """An item referenced by any ledger transaction cannot be deleted."""

    LEDGER_REPLAY = "ledger_replay"
    """Replaying an item's ledger from quantity_initial reproduces
    quantity_available.  Total edits never touch availability, so the
    replay holds across them."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)
