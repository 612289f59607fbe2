"""Repositories for catalog database operations.

ProductRepository runs filtered, paginated product reads and the
association writes for a single product. CategoryRepository handles
category CRUD and per-category product counts. Neither commits; the
caller owns the transaction.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, delete, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_manager.catalog.filters import SortField, SortOrder
from catalog_manager.catalog.models import Category, Product, ProductCategory
from catalog_manager.catalog.predicates import ProductPredicates, sort_column
from catalog_manager.catalog.read_models import CategoryRef, CategoryWithProductCount


class ProductRepository:
    """Repository for Product database operations.

    Handles filtering, sorting, pagination, category attachment and
    association replacement for products.

    Example usage:
        async with async_session_factory() as session:
            repo = ProductRepository(session)
            rows, total = await repo.find_page(
                build_predicates(query),
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                limit=query.limit,
                offset=query.offset,
            )
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, product_id: str) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            Product if found, None otherwise.
        """
        result = await self.session.execute(
            select(Product).where(Product.id == product_id)
        )
        return result.scalar_one_or_none()

    async def find_page(
        self,
        predicates: ProductPredicates,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Product], int]:
        """Find one page of products and the total matching count.

        The row query and the count query share the same clauses.
        Rows are ordered by the sort column, then by id so that equal
        sort values page deterministically.

        Args:
            predicates: Filter clauses.
            sort_by: Sort field.
            sort_order: Sort direction.
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Tuple of (products on the page, distinct products matching).
        """
        total = await self.count(predicates)
        # Pages past the end never reach the store; page has no upper bound
        if offset >= total:
            return [], total

        column = sort_column(sort_by)
        ordering = column.asc() if sort_order == SortOrder.ASC else column.desc()

        query = (
            self._filtered(select(Product), predicates)
            .order_by(ordering, Product.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def count(self, predicates: ProductPredicates) -> int:
        """Count distinct products matching the predicates.

        Args:
            predicates: Filter clauses.

        Returns:
            Count of matching products.
        """
        query = self._filtered(
            select(func.count(distinct(Product.id))).select_from(Product),
            predicates,
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def load_categories(
        self,
        product_ids: Sequence[str],
    ) -> dict[str, list[CategoryRef]]:
        """Fetch the categories of several products in one query.

        Args:
            product_ids: Products to resolve.

        Returns:
            Mapping with an entry (possibly empty) for every requested id.
        """
        attached: dict[str, list[CategoryRef]] = {pid: [] for pid in product_ids}
        if not attached:
            return attached

        query = (
            select(ProductCategory.product_id, Category.id, Category.name)
            .join(Category, Category.id == ProductCategory.category_id)
            .where(ProductCategory.product_id.in_(list(attached)))
            .order_by(Category.name, Category.id)
        )
        result = await self.session.execute(query)
        for product_id, category_id, category_name in result.all():
            attached[product_id].append(CategoryRef(id=category_id, name=category_name))
        return attached

    async def add(self, product: Product) -> Product:
        """Insert a product row.

        Args:
            product: Product to insert.

        Returns:
            Inserted product with its generated id.
        """
        self.session.add(product)
        await self.session.flush()
        return product

    async def update_fields(self, product: Product, changes: dict[str, Any]) -> Product:
        """Apply column changes to a product and stamp updated_at.

        Args:
            product: Loaded product.
            changes: Column name to new value.

        Returns:
            Updated product.
        """
        for column, value in changes.items():
            setattr(product, column, value)
        product.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return product

    async def add_categories(self, product_id: str, category_ids: Iterable[str]) -> None:
        """Link a product to categories.

        Args:
            product_id: Product ID.
            category_ids: Category IDs, duplicates ignored.
        """
        unique_ids = list(dict.fromkeys(category_ids))
        if not unique_ids:
            return
        self.session.add_all(
            ProductCategory(product_id=product_id, category_id=category_id)
            for category_id in unique_ids
        )
        await self.session.flush()

    async def clear_categories(self, product_id: str) -> int:
        """Remove every association row of a product.

        Args:
            product_id: Product ID.

        Returns:
            Number of association rows removed.
        """
        result = await self.session.execute(
            delete(ProductCategory).where(ProductCategory.product_id == product_id)
        )
        return result.rowcount

    async def replace_categories(self, product_id: str, category_ids: Iterable[str]) -> None:
        """Replace a product's association set.

        Must run inside the caller's transaction; readers outside it
        keep seeing the previous set until commit.

        Args:
            product_id: Product ID.
            category_ids: New complete set of category IDs.
        """
        await self.clear_categories(product_id)
        await self.add_categories(product_id, category_ids)

    async def delete(self, product_id: str) -> bool:
        """Delete a product together with its association rows.

        Args:
            product_id: Product ID.

        Returns:
            True if a product row was deleted.
        """
        await self.clear_categories(product_id)
        result = await self.session.execute(
            delete(Product).where(Product.id == product_id)
        )
        return result.rowcount > 0

    def _filtered(self, query: Select, predicates: ProductPredicates) -> Select:
        """Apply predicate clauses to a select."""
        clauses = predicates.clauses()
        if clauses:
            query = query.where(*clauses)
        return query


class CategoryRepository:
    """Repository for Category database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def get_by_id(self, category_id: str) -> Category | None:
        """Get category by ID."""
        result = await self.session.execute(
            select(Category).where(Category.id == category_id)
        )
        return result.scalar_one_or_none()

    async def find_all_with_counts(self) -> list[CategoryWithProductCount]:
        """List categories by name with their distinct product counts.

        Returns:
            Categories ordered by name, then id.
        """
        product_count = func.count(distinct(ProductCategory.product_id)).label("product_count")
        query = (
            select(Category, product_count)
            .outerjoin(ProductCategory, ProductCategory.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.name, Category.id)
        )
        result = await self.session.execute(query)
        return [
            CategoryWithProductCount.from_row(category, count)
            for category, count in result.all()
        ]

    async def count_products(self, category_id: str) -> int:
        """Count distinct products linked to a category."""
        result = await self.session.execute(
            select(func.count(distinct(ProductCategory.product_id))).where(
                ProductCategory.category_id == category_id
            )
        )
        return result.scalar_one()

    async def existing_ids(self, category_ids: Iterable[str]) -> set[str]:
        """Return the subset of category_ids that exist."""
        wanted = list(dict.fromkeys(category_ids))
        if not wanted:
            return set()
        result = await self.session.execute(
            select(Category.id).where(Category.id.in_(wanted))
        )
        return set(result.scalars().all())

    async def add(self, category: Category) -> Category:
        """Insert a category row."""
        self.session.add(category)
        await self.session.flush()
        return category

    async def rename(self, category: Category, name: str) -> Category:
        """Change a category's name."""
        category.name = name
        await self.session.flush()
        return category

    async def delete(self, category_id: str) -> bool:
        """Delete a category together with its association rows.

        Returns:
            True if a category row was deleted.
        """
        await self.session.execute(
            delete(ProductCategory).where(ProductCategory.category_id == category_id)
        )
        result = await self.session.execute(
            delete(Category).where(Category.id == category_id)
        )
        return result.rowcount > 0
