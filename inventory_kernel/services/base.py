"""
BaseService -- abstract base for the kernel's write services.

Responsibility:
    Common constructor and session contract for ItemCatalog, LedgerStore
    and MovementEngine.  Services persist with ``session.flush()``; the
    caller owns commit and rollback.  MovementEngine is the one exception:
    with ``auto_commit=True`` it commits its own unit of work.

Architecture position:
    Kernel > Services -- imperative shell over the pure domain.

Failure modes:
    - A subclass that commits on its own breaks callers that compose
      several service calls into one transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        Read-only queries belong in ``inventory_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
