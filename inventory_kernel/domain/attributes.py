"""
Validation of the open key/value extension on items.

Items carry category-specific fields (length, color, cat_version,
indoor_outdoor, manufacturer, ...) that the ledger never interprets.  They
are stored as a flat JSON object; this module keeps that object flat and
JSON-safe.
"""

import re
from collections.abc import Mapping
from typing import Any

from inventory_kernel.db.types import MAX_TEXT_LENGTH
from inventory_kernel.exceptions import ValidationError

MAX_ATTRIBUTE_KEY_LENGTH = 64

_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Keys with a closed set of values
ENUMERATED_ATTRIBUTES: dict[str, frozenset[str]] = {
    "indoor_outdoor": frozenset({"indoor", "outdoor"}),
}

_SCALAR_TYPES = (str, int, float, bool)


def validate_attributes(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Return a plain dict copy of valid attributes.

    Null values are dropped, so a patch can clear a key by sending None.

    Raises:
        ValidationError: non-identifier key, nested value, over-long string,
            or a value outside an enumerated key's allowed set.
    """
    if attributes is None:
        return {}
    if not isinstance(attributes, Mapping):
        raise ValidationError("attributes", "must be a mapping")

    cleaned: dict[str, Any] = {}
    for key, value in attributes.items():
        if not isinstance(key, str) or not _KEY_PATTERN.match(key):
            raise ValidationError("attributes", f"invalid key {key!r}")
        if len(key) > MAX_ATTRIBUTE_KEY_LENGTH:
            raise ValidationError(
                "attributes", f"key {key!r} longer than {MAX_ATTRIBUTE_KEY_LENGTH}"
            )
        if value is None:
            continue
        if not isinstance(value, _SCALAR_TYPES):
            raise ValidationError(
                "attributes", f"{key} must be a scalar, got {type(value).__name__}"
            )
        if isinstance(value, str):
            value = value.strip()
            if len(value) > MAX_TEXT_LENGTH:
                raise ValidationError("attributes", f"{key} is too long")
        allowed = ENUMERATED_ATTRIBUTES.get(key)
        if allowed is not None and value not in allowed:
            raise ValidationError("attributes", f"{key} must be one of {sorted(allowed)}")
        cleaned[key] = value
    return cleaned


def merge_attributes(
    current: Mapping[str, Any] | None,
    patch: Mapping[str, Any],
) -> dict[str, Any]:
    """Overlay a patch on existing attributes; None in the patch removes a key."""
    cleaned = validate_attributes(patch)
    merged = dict(current or {})
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
    merged.update(cleaned)
    return merged
