"""Database layer - engine, base classes, types, and append-only enforcement."""

from inventory_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from inventory_kernel.db.types import (
    MAX_ITEM_CODE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_SHORT_CODE_LENGTH,
    MAX_TEXT_LENGTH,
)

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "MAX_ITEM_CODE_LENGTH",
    "MAX_NAME_LENGTH",
    "MAX_SHORT_CODE_LENGTH",
    "MAX_TEXT_LENGTH",
]
