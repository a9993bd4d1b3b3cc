"""Scannable item code generation."""

from uuid import uuid4

DEFAULT_CODE_PREFIX = "INV"
DEFAULT_CODE_LENGTH = 8


def generate_item_code(
    prefix: str = DEFAULT_CODE_PREFIX,
    length: int = DEFAULT_CODE_LENGTH,
) -> str:
    """
    Return a new code such as ``INV-1A2B3C4D``.

    The random part is ``length`` uppercase hex characters taken from a
    uuid4, so collisions are improbable but still possible; the unique
    constraint on items.code is the final arbiter.
    """
    if not 4 <= length <= 32:
        raise ValueError(f"code length must be between 4 and 32, got {length}")
    return f"{prefix}-{uuid4().hex[:length].upper()}"
