"""
Module: inventory_kernel.selectors.base
Responsibility: Abstract base class for the read-only query selectors, the
    query side of the kernel.  Selectors derive every report from the items
    and ledger tables; they hold no state of their own.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/dtos.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
    - Session ownership: the caller owns the session and its transaction
      scope (a DEFERRED transaction on SQLite, so reads never block writers).
"""

from abc import ABC

from sqlalchemy.orm import Session

from inventory_kernel.exceptions import ValidationError


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller, performs read-only queries, and
        returns DTOs.  Reporting is advisory: results reflect whatever was
        committed when each query ran.
    """

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def _validate_page(page: int, limit: int, max_page_size: int) -> int:
        """Check paging arguments and return the row offset."""
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError("page", f"must be a positive integer, got {page!r}")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError("limit", f"must be a positive integer, got {limit!r}")
        if limit > max_page_size:
            raise ValidationError("limit", f"must not exceed {max_page_size}, got {limit}")
        return (page - 1) * limit
