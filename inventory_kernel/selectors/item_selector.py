"""
Module: inventory_kernel.selectors.item_selector
Responsibility: Read access to the catalog -- the searchable, paginated item listing with per-item checkout counts.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import String, cast, func, or_, select

from inventory_kernel.domain.dtos import ItemListing, ItemPage, ItemSnapshot
from inventory_kernel.models.item import Item
from inventory_kernel.models.transaction import InventoryTransaction, TransactionKind
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.transaction_selector import (
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_PAGE_SIZE,
)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ItemSelector(BaseSelector):
    """Catalog queries returning ItemSnapshot / ItemPage DTOs."""

    def __init__(self, session, max_page_size: int = DEFAULT_MAX_PAGE_SIZE):
        super().__init__(session)
        self.max_page_size = max_page_size

    def search(
        self,
        search: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ItemPage:
        """
        Newest-first item listing, optionally filtered by a free-text term.

        The term matches case-insensitively against name, code, location,
        description and the serialized attributes.
        """
        offset = self._validate_page(page, limit, self.max_page_size)

        checkouts = (
            select(func.count(InventoryTransaction.id))
            .where(
                InventoryTransaction.item_id == Item.id,
                InventoryTransaction.kind == TransactionKind.CHECKOUT.value,
            )
            .correlate(Item)
            .scalar_subquery()
        )

        condition = None
        term = (search or "").strip()
        if term:
            pattern = _like_pattern(term)
            condition = or_(
                Item.name.ilike(pattern, escape="\\"),
                Item.code.ilike(pattern, escape="\\"),
                Item.location.ilike(pattern, escape="\\"),
                Item.description.ilike(pattern, escape="\\"),
                cast(Item.attributes, String).ilike(pattern, escape="\\"),
            )

        count_stmt = select(func.count(Item.id))
        stmt = select(Item, checkouts.label("total_checkouts"))
        if condition is not None:
            count_stmt = count_stmt.where(condition)
            stmt = stmt.where(condition)

        total = self.session.execute(count_stmt).scalar_one()
        rows = self.session.execute(
            stmt.order_by(Item.created_at.desc(), Item.code.asc()).offset(offset).limit(limit)
        )
        listings = tuple(
            ItemListing(item=ItemSnapshot.from_model(item), total_checkouts=count)
            for item, count in rows
        )
        return ItemPage(items=listings, total=total, page=page, limit=limit)
