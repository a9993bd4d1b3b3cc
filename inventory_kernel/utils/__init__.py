"""Small helpers with no database access."""

from inventory_kernel.utils.codes import generate_item_code

__all__ = ["generate_item_code"]
