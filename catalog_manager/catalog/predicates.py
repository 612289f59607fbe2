"""Product filter predicates.

Converts a ProductQuery into SQLAlchemy boolean clauses. The result is
built once and never mutated; the row query and the count query are
both constructed from the same ProductPredicates value.
"""

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, false, select

from catalog_manager.catalog.filters import ProductQuery, SortField
from catalog_manager.catalog.models import MAX_PRICE, MAX_STOCK, Product, ProductCategory


@dataclass(frozen=True)
class ProductPredicates:
    """AND-composed filter clauses over products.

    Attributes:
        filters: Clauses on product attributes (search, price, stock).
        category_filter: Category membership clause, when filtering by category.
    """

    filters: tuple[ColumnElement[bool], ...] = ()
    category_filter: ColumnElement[bool] | None = None

    @property
    def requires_category_join(self) -> bool:
        """Whether the association table takes part in the filter."""
        return self.category_filter is not None

    def clauses(self) -> tuple[ColumnElement[bool], ...]:
        """All clauses, category membership first."""
        if self.category_filter is None:
            return self.filters
        return (self.category_filter, *self.filters)


def build_predicates(query: ProductQuery) -> ProductPredicates:
    """Build filter clauses for a product query.

    Bounds outside what the columns can hold are never bound as
    parameters: a lower bound above the column maximum matches nothing
    and an upper bound at or above it is dropped. Fractional stock
    bounds are rounded inwards (2.5 means 3 and up).

    Args:
        query: Normalized listing parameters.

    Returns:
        Predicates with one clause per effective bound or filter.
    """
    filters: list[ColumnElement[bool]] = []

    if query.min_price is not None:
        if query.min_price > MAX_PRICE:
            filters.append(false())
        else:
            filters.append(Product.price >= query.min_price)
    if query.max_price is not None and query.max_price < MAX_PRICE:
        filters.append(Product.price <= query.max_price)

    if query.min_stock is not None:
        if query.min_stock > MAX_STOCK:
            filters.append(false())
        else:
            filters.append(Product.stock_quantity >= math.ceil(query.min_stock))
    if query.max_stock is not None and query.max_stock < MAX_STOCK:
        filters.append(Product.stock_quantity <= math.floor(query.max_stock))

    if query.search:
        pattern = f"%{_escape_like(query.search)}%"
        filters.append(Product.name.ilike(pattern, escape="\\"))

    return ProductPredicates(
        filters=tuple(filters),
        category_filter=category_membership(query.effective_category_ids),
    )


def category_membership(category_ids: tuple[str, ...]) -> ColumnElement[bool] | None:
    """Clause matching products linked to any of the given categories.

    Expressed as a semi-join so a product in several of the categories
    still yields a single row.
    """
    if not category_ids:
        return None
    members = select(ProductCategory.product_id).where(
        ProductCategory.category_id.in_(category_ids)
    )
    return Product.id.in_(members)


def sort_column(sort_by: SortField) -> Any:
    """Get SQLAlchemy column for sorting.

    Args:
        sort_by: Sort field.

    Returns:
        SQLAlchemy column.
    """
    columns = {
        SortField.NAME: Product.name,
        SortField.PRICE: Product.price,
        SortField.STOCK: Product.stock_quantity,
        SortField.CREATED_AT: Product.created_at,
    }
    return columns[sort_by]


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
