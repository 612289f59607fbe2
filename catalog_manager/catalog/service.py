"""Catalog service for product and category operations.

High-level service that combines repository operations with the
catalog's business rules. Every write runs as one unit of work: the
product row and its association rows are committed together or not
at all, and the result is re-read through the listing read path.
"""

from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_manager.catalog.filters import ProductQuery
from catalog_manager.catalog.models import MAX_PRICE, MAX_STOCK, Category, Product
from catalog_manager.catalog.predicates import build_predicates
from catalog_manager.catalog.read_models import (
    CategoryWithProductCount,
    ProductPage,
    ProductWithCategories,
)
from catalog_manager.catalog.repository import CategoryRepository, ProductRepository
from catalog_manager.domain.exceptions import (
    CategoryNotFoundError,
    PayloadValidationError,
    ProductNotFoundError,
    StoreFailureError,
)

logger = structlog.get_logger()

PRODUCT_FIELDS = frozenset({"name", "description", "price", "stock_quantity", "image_url"})
MAX_NAME_LENGTH = 255
MAX_CATEGORY_NAME_LENGTH = 100


class CatalogService:
    """Service for catalog operations.

    Example usage:
        async with async_session_factory() as session:
            service = CatalogService(session)
            page = await service.search_products(parse_product_query(search="lamp"))
            product = await service.update_product(
                page.products[0].id,
                {"price": Decimal("12.50")},
                category_ids=[],
            )
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session
        self.products = ProductRepository(session)
        self.categories = CategoryRepository(session)

    # ========================================================================
    # Product reads
    # ========================================================================

    async def search_products(self, query: ProductQuery) -> ProductPage:
        """Search products with filters and pagination.

        Args:
            query: Normalized listing parameters.

        Returns:
            The requested page with categories attached and the total count.
        """
        predicates = build_predicates(query)

        async with self._store_errors("search_products"):
            rows, total = await self.products.find_page(
                predicates,
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                limit=query.limit,
                offset=query.offset,
            )
            attached = await self.products.load_categories([row.id for row in rows])

        return ProductPage(
            products=[ProductWithCategories.from_row(row, attached[row.id]) for row in rows],
            total=total,
            page=query.page,
            limit=query.limit,
        )

    async def get_product(self, product_id: str) -> ProductWithCategories:
        """Get product by ID with its categories.

        Raises:
            ProductNotFoundError: If the product does not exist.
        """
        async with self._store_errors("get_product"):
            product = await self.products.get_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            attached = await self.products.load_categories([product.id])

        return ProductWithCategories.from_row(product, attached[product.id])

    # ========================================================================
    # Product writes
    # ========================================================================

    async def create_product(
        self,
        data: Mapping[str, Any],
        category_ids: Iterable[str],
    ) -> ProductWithCategories:
        """Create a product linked to the given categories.

        Args:
            data: Product column values.
            category_ids: Categories to link; duplicates are ignored.

        Returns:
            The created product as read back from the store.

        Raises:
            PayloadValidationError: On invalid fields or unknown categories.
            StoreFailureError: If the database rejects the write.
        """
        fields = validate_product_fields(data, partial=False)
        unique_ids = list(dict.fromkeys(category_ids))

        async with self._unit_of_work("create_product"):
            await self._ensure_categories_exist(unique_ids)
            product = await self.products.add(Product(**fields))
            await self.products.add_categories(product.id, unique_ids)
            product_id = product.id

        logger.info(
            "Product created",
            product_id=product_id,
            category_count=len(unique_ids),
        )
        return await self.get_product(product_id)

    async def update_product(
        self,
        product_id: str,
        changes: Mapping[str, Any],
        category_ids: Iterable[str] | None = None,
    ) -> ProductWithCategories:
        """Apply a partial update to a product.

        category_ids=None leaves the product's categories untouched; any
        other value, including an empty list, replaces the whole set.

        Args:
            product_id: Product ID.
            changes: Column values to change.
            category_ids: New category set, or None to keep the current one.

        Returns:
            The updated product as read back from the store.

        Raises:
            ProductNotFoundError: If the product does not exist.
            PayloadValidationError: On invalid fields or unknown categories.
            StoreFailureError: If the database rejects the write.
        """
        fields = validate_product_fields(changes, partial=True)
        unique_ids = None if category_ids is None else list(dict.fromkeys(category_ids))

        async with self._unit_of_work("update_product"):
            product = await self.products.get_by_id(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            if unique_ids is not None:
                await self._ensure_categories_exist(unique_ids)

            await self.products.update_fields(product, fields)
            if unique_ids is not None:
                await self.products.replace_categories(product_id, unique_ids)

        logger.info(
            "Product updated",
            product_id=product_id,
            fields=sorted(fields),
            categories_replaced=unique_ids is not None,
        )
        return await self.get_product(product_id)

    async def delete_product(self, product_id: str) -> None:
        """Delete a product and its category links.

        Raises:
            ProductNotFoundError: If the product does not exist.
        """
        async with self._unit_of_work("delete_product"):
            if not await self.products.delete(product_id):
                raise ProductNotFoundError(product_id)

        logger.info("Product deleted", product_id=product_id)

    # ========================================================================
    # Categories
    # ========================================================================

    async def list_categories(self) -> list[CategoryWithProductCount]:
        """Get categories ordered by name with product counts."""
        async with self._store_errors("list_categories"):
            return await self.categories.find_all_with_counts()

    async def get_category(self, category_id: str) -> CategoryWithProductCount:
        """Get category by ID with its product count.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        async with self._store_errors("get_category"):
            category = await self.categories.get_by_id(category_id)
            if category is None:
                raise CategoryNotFoundError(category_id)
            count = await self.categories.count_products(category_id)

        return CategoryWithProductCount.from_row(category, count)

    async def create_category(self, name: str) -> CategoryWithProductCount:
        """Create a category."""
        clean_name = validate_category_name(name)

        async with self._unit_of_work("create_category"):
            category = await self.categories.add(Category(name=clean_name))
            category_id = category.id

        logger.info("Category created", category_id=category_id)
        return await self.get_category(category_id)

    async def update_category(self, category_id: str, name: str) -> CategoryWithProductCount:
        """Rename a category.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        clean_name = validate_category_name(name)

        async with self._unit_of_work("update_category"):
            category = await self.categories.get_by_id(category_id)
            if category is None:
                raise CategoryNotFoundError(category_id)
            await self.categories.rename(category, clean_name)

        logger.info("Category updated", category_id=category_id)
        return await self.get_category(category_id)

    async def delete_category(self, category_id: str) -> None:
        """Delete a category and unlink it from all products.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        async with self._unit_of_work("delete_category"):
            if not await self.categories.delete(category_id):
                raise CategoryNotFoundError(category_id)

        logger.info("Category deleted", category_id=category_id)

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _ensure_categories_exist(self, category_ids: list[str]) -> None:
        """Reject category ids that are not in the store."""
        existing = await self.categories.existing_ids(category_ids)
        missing = [cid for cid in category_ids if cid not in existing]
        if missing:
            raise PayloadValidationError(
                f"Unknown category ids: {', '.join(missing)}",
                errors=[
                    {"field": "categoryIds", "message": f"Category not found: {cid}"}
                    for cid in missing
                ],
            )

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[None]:
        """Commit on success; roll back on any failure.

        Database errors are logged and surfaced as StoreFailureError.
        """
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Catalog write failed", operation=operation)
            raise StoreFailureError(operation) from exc
        except Exception:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def _store_errors(self, operation: str) -> AsyncIterator[None]:
        """Surface database errors on reads as StoreFailureError."""
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Catalog read failed", operation=operation)
            raise StoreFailureError(operation) from exc


# ============================================================================
# Field validation
# ============================================================================


def validate_product_fields(data: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Check product column values before any mutation.

    Args:
        data: Column name to value.
        partial: When False, name and price are required and
            stock_quantity defaults to 0.

    Returns:
        Cleaned values (name stripped, price as Decimal).

    Raises:
        PayloadValidationError: Listing every invalid field.
    """
    errors: list[dict[str, str]] = []
    fields: dict[str, Any] = {}

    for key in sorted(set(data) - PRODUCT_FIELDS):
        errors.append({"field": key, "message": "Unknown field"})

    if not partial:
        for required in ("name", "price"):
            if data.get(required) is None:
                errors.append({"field": required, "message": "Field required"})

    if data.get("name") is not None:
        name = data["name"]
        if not isinstance(name, str) or not name.strip():
            errors.append({"field": "name", "message": "Name cannot be empty"})
        elif len(name.strip()) > MAX_NAME_LENGTH:
            errors.append(
                {"field": "name", "message": f"Name exceeds {MAX_NAME_LENGTH} characters"}
            )
        else:
            fields["name"] = name.strip()
    elif partial and "name" in data:
        errors.append({"field": "name", "message": "Name cannot be empty"})

    if data.get("price") is not None:
        price = _to_price(data["price"])
        if price is None:
            errors.append(
                {
                    "field": "price",
                    "message": "Price must be a non-negative amount with at most 2 decimal places",
                }
            )
        else:
            fields["price"] = price
    elif partial and "price" in data:
        errors.append({"field": "price", "message": "Price cannot be null"})

    if "stock_quantity" in data:
        stock = data["stock_quantity"]
        if isinstance(stock, bool) or not isinstance(stock, int) or not 0 <= stock <= MAX_STOCK:
            errors.append(
                {
                    "field": "stock_quantity",
                    "message": f"Stock quantity must be an integer from 0 to {MAX_STOCK}",
                }
            )
        else:
            fields["stock_quantity"] = stock
    elif not partial:
        fields["stock_quantity"] = 0

    for optional in ("description", "image_url"):
        if optional in data:
            value = data[optional]
            if value is not None and not isinstance(value, str):
                errors.append({"field": optional, "message": "Must be a string"})
            else:
                fields[optional] = value

    if errors:
        raise PayloadValidationError("Invalid product data", errors=errors)
    return fields


def validate_category_name(name: Any) -> str:
    """Return the stripped category name or raise PayloadValidationError."""
    if not isinstance(name, str) or not name.strip():
        raise PayloadValidationError(
            "Invalid category data",
            errors=[{"field": "name", "message": "Name cannot be empty"}],
        )
    clean = name.strip()
    if len(clean) > MAX_CATEGORY_NAME_LENGTH:
        raise PayloadValidationError(
            "Invalid category data",
            errors=[
                {
                    "field": "name",
                    "message": f"Name exceeds {MAX_CATEGORY_NAME_LENGTH} characters",
                }
            ],
        )
    return clean


def _to_price(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0 or price > MAX_PRICE:
        return None
    if price.as_tuple().exponent < -2:
        return None
    return price.quantize(Decimal("0.01"))
