"""
Module: inventory_kernel.db.types
Responsibility: Column widths shared by every inventory model, so codes,
    names and text columns are declared identically and the domain layer
    can validate lengths before they reach the database.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.
"""

from sqlalchemy import String

# Scannable item code, e.g. "INV-1A2B3C4D"
MAX_ITEM_CODE_LENGTH = 64

# Short identifier strings (category, item type, movement kind)
MAX_SHORT_CODE_LENGTH = 50

# Display names, locations and usernames
MAX_NAME_LENGTH = 255

# Long text for descriptions and notes
MAX_TEXT_LENGTH = 4000


def item_code_type() -> String:
    return String(MAX_ITEM_CODE_LENGTH)


def short_code_type() -> String:
    return String(MAX_SHORT_CODE_LENGTH)


def name_type() -> String:
    return String(MAX_NAME_LENGTH)


def long_text_type() -> String:
    return String(MAX_TEXT_LENGTH)
