"""Read models assembled per query.

None of these are persisted; the repository and service build them
from rows at read time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from catalog_manager.catalog.models import Category, Product


@dataclass(frozen=True)
class CategoryRef:
    """Category as attached to a product (id and name only)."""

    id: str
    name: str


@dataclass
class ProductWithCategories:
    """A product together with its currently associated categories."""

    id: str
    name: str
    description: str | None
    price: Decimal
    stock_quantity: int
    image_url: str | None
    created_at: datetime
    updated_at: datetime
    categories: list[CategoryRef] = field(default_factory=list)

    @classmethod
    def from_row(
        cls,
        product: Product,
        categories: list[CategoryRef],
    ) -> "ProductWithCategories":
        """Build from a product row and its resolved categories."""
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            stock_quantity=product.stock_quantity,
            image_url=product.image_url,
            created_at=product.created_at,
            updated_at=product.updated_at,
            categories=list(categories),
        )


@dataclass
class CategoryWithProductCount:
    """A category with the number of distinct products in it."""

    id: str
    name: str
    created_at: datetime
    product_count: int = 0

    @classmethod
    def from_row(cls, category: Category, product_count: int) -> "CategoryWithProductCount":
        """Build from a category row and its product count."""
        return cls(
            id=category.id,
            name=category.name,
            created_at=category.created_at,
            product_count=product_count,
        )


@dataclass
class ProductPage:
    """One page of products plus the total count for the filter.

    Attributes:
        products: Products on this page, in sort order.
        total: Distinct products matching the filter across all pages.
        page: Current page (1-indexed).
        limit: Items per page.
    """

    products: list[ProductWithCategories]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        """Calculate total pages."""
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages
