"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP layer, scripts, tests) must branch on the outcome of a
movement without parsing messages.  Every error therefore:
  1. Has its own class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (available, max_acceptable, ...)

Example:
    try:
        ledger.checkout("INV-1A2B3C4D", 3, actor)
    except InsufficientStockError as e:
        return {"error": e.code, "available": e.available}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |
    +-- ItemError
    |   +-- ItemNotFoundError
    |   +-- DuplicateCodeError
    |   +-- ItemReferencedError
    |
    +-- MovementError
    |   +-- InsufficientStockError
    |   +-- OverCapacityError
    |
    +-- StorageError
    |   +-- StorageFaultError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|------------------------------------------
Validation   | VALIDATION_ERROR          | Missing/malformed input (qty <= 0, ...)
-------------|---------------------------|------------------------------------------
Item         | ITEM_NOT_FOUND            | No item with that id or code
             | DUPLICATE_CODE            | Item code already in use
             | ITEM_REFERENCED           | Delete blocked, ledger references item
-------------|---------------------------|------------------------------------------
Movement     | INSUFFICIENT_STOCK        | Checkout exceeds available quantity
             | OVER_CAPACITY             | Checkin exceeds checked-out quantity
-------------|---------------------------|------------------------------------------
Storage      | STORAGE_FAULT             | Datastore unavailable / statement failed
-------------|---------------------------|------------------------------------------
Immutability | IMMUTABILITY_VIOLATION    | UPDATE/DELETE of a ledger entry, or a
             |                           | quantity change outside the engine

===============================================================================
HANDLING PATTERNS
===============================================================================

Business-rule errors (validation, not found, stock bounds, referenced) are
expected outcomes and must never be retried automatically.  StorageFaultError
is raised only after the unit of work has been rolled back; its ``retryable``
flag tells the caller a retry is safe.  The kernel itself never retries.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation


class ValidationError(InventoryKernelError):
    """Input failed validation before any state was touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# Item-related exceptions


class ItemError(InventoryKernelError):
    """Base exception for catalog errors."""

    code: str = "ITEM_ERROR"


class ItemNotFoundError(ItemError):
    """No item matches the given id or code."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Item not found: {identifier}")


class DuplicateCodeError(ItemError):
    """The item code is already assigned to another item."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Item code already exists: {item_code}")


class ItemReferencedError(ItemError):
    """
    Item cannot be deleted because ledger transactions reference it.

    Deleting the item would orphan its history, so deletion is a hard block.
    """

    code: str = "ITEM_REFERENCED"

    def __init__(self, item_id: str, transaction_count: int | None = None):
        self.item_id = item_id
        self.transaction_count = transaction_count
        detail = (
            f" ({transaction_count} transaction(s))"
            if transaction_count is not None
            else ""
        )
        super().__init__(
            f"Item {item_id} is referenced by ledger transactions{detail}"
        )


# Movement exceptions


class MovementError(InventoryKernelError):
    """Base exception for rejected checkout/checkin requests."""

    code: str = "MOVEMENT_ERROR"


class InsufficientStockError(MovementError):
    """Checkout asks for more units than are available.  No partial fill."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: int, available: int):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


class OverCapacityError(MovementError):
    """Checkin would push available above total."""

    code: str = "OVER_CAPACITY"

    def __init__(self, item_id: str, requested: int, max_acceptable: int):
        self.item_id = item_id
        self.requested = requested
        self.max_acceptable = max_acceptable
        super().__init__(
            f"Checkin exceeds capacity for item {item_id}: "
            f"requested {requested}, at most {max_acceptable} can be checked in"
        )


# Storage exceptions


class StorageError(InventoryKernelError):
    """Base exception for datastore failures."""

    code: str = "STORAGE_ERROR"


class StorageFaultError(StorageError):
    """
    The datastore was unavailable or a statement failed.

    Raised after the unit of work was rolled back, so no partial state is
    visible.  Retry policy belongs to the caller.
    """

    code: str = "STORAGE_FAULT"

    def __init__(self, operation: str, detail: str, retryable: bool = True):
        self.operation = operation
        self.detail = detail
        self.retryable = retryable
        super().__init__(f"Storage fault during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for append-only violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify data that may only change through the engine."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
