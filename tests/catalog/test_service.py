"""Tests for CatalogService reads and writes."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_manager.catalog.filters import ProductQuery, parse_product_query
from catalog_manager.catalog.models import Product, ProductCategory
from catalog_manager.catalog.repository import ProductRepository
from catalog_manager.catalog.service import (
    CatalogService,
    validate_category_name,
    validate_product_fields,
)
from catalog_manager.domain.exceptions import (
    CategoryNotFoundError,
    PayloadValidationError,
    ProductNotFoundError,
    StoreFailureError,
)


def category_names(product) -> set[str]:
    """Names of a product's categories."""
    return {category.name for category in product.categories}


async def link_count(session: AsyncSession, product_id: str) -> int:
    """Association rows stored for a product."""
    result = await session.execute(
        select(func.count()).select_from(ProductCategory).where(
            ProductCategory.product_id == product_id
        )
    )
    return result.scalar_one()


class TestSearchProducts:
    """Tests for the assembled listing read path."""

    @pytest.mark.asyncio
    async def test_empty_filtered_set(self, service: CatalogService) -> None:
        """page=1, limit=10 on an empty set gives no products and total 0."""
        page = await service.search_products(parse_product_query(page="1", limit="10"))
        assert page.products == []
        assert page.total == 0
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_tools_over_ten(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Tools priced at least 10 is only the Gadget."""
        ids = tools_and_electronics
        page = await service.search_products(
            ProductQuery(category_ids=(ids["Tools"],), min_price=Decimal("10"))
        )
        assert [product.name for product in page.products] == ["Gadget"]
        assert page.total == 1
        assert category_names(page.products[0]) == {"Tools", "Electronics"}

    @pytest.mark.asyncio
    async def test_categories_not_limited_to_filter(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Filtering by one category still attaches all of a product's categories."""
        ids = tools_and_electronics
        page = await service.search_products(ProductQuery(category_id=ids["Electronics"]))
        assert page.total == 1
        assert category_names(page.products[0]) == {"Tools", "Electronics"}

    @pytest.mark.asyncio
    async def test_both_products_in_tools(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Each product appears once with its own categories."""
        ids = tools_and_electronics
        page = await service.search_products(
            ProductQuery(category_ids=(ids["Tools"], ids["Electronics"]))
        )
        names = [product.name for product in page.products]
        assert sorted(names) == ["Gadget", "Widget"]
        assert page.total == 2
        widget = next(p for p in page.products if p.name == "Widget")
        assert category_names(widget) == {"Tools"}


class TestCreateProduct:
    """Tests for product creation."""

    @pytest.mark.asyncio
    async def test_create_with_categories(self, service: CatalogService) -> None:
        """The created product is returned with its categories."""
        a = await service.create_category("A")
        b = await service.create_category("B")

        product = await service.create_product(
            {"name": "  Lamp  ", "price": "12.5", "stock_quantity": 3},
            [a.id, b.id, a.id],
        )

        assert product.name == "Lamp"
        assert product.price == Decimal("12.50")
        assert product.stock_quantity == 3
        assert category_names(product) == {"A", "B"}
        assert await link_count(service.session, product.id) == 2

    @pytest.mark.asyncio
    async def test_create_without_categories(self, service: CatalogService) -> None:
        """The service itself accepts an empty category list."""
        product = await service.create_product({"name": "Loose", "price": 1}, [])
        assert product.categories == []
        assert product.stock_quantity == 0

    @pytest.mark.asyncio
    async def test_unknown_category_rejected_before_insert(
        self, service: CatalogService
    ) -> None:
        """No product row is written when a category id is unknown."""
        with pytest.raises(PayloadValidationError) as exc_info:
            await service.create_product({"name": "Ghost", "price": 1}, ["missing"])

        assert exc_info.value.errors[0]["field"] == "categoryIds"
        result = await service.session.execute(select(func.count()).select_from(Product))
        assert result.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_negative_price_rejected(self, service: CatalogService) -> None:
        """Negative prices never reach the store."""
        with pytest.raises(PayloadValidationError):
            await service.create_product({"name": "Bad", "price": "-1"}, [])


class TestUpdateProduct:
    """Tests for partial updates and category replacement."""

    @pytest.mark.asyncio
    async def test_omitted_categories_untouched(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Leaving categoryIds out keeps the existing links."""
        gadget_id = tools_and_electronics["Gadget"]
        before = await service.get_product(gadget_id)

        updated = await service.update_product(gadget_id, {"stock_quantity": 7})

        assert updated.stock_quantity == 7
        assert updated.categories == before.categories

    @pytest.mark.asyncio
    async def test_empty_categories_clear_all(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """An explicit empty list removes every link."""
        gadget_id = tools_and_electronics["Gadget"]

        updated = await service.update_product(gadget_id, {}, category_ids=[])

        assert updated.categories == []
        assert await link_count(service.session, gadget_id) == 0

    @pytest.mark.asyncio
    async def test_replace_round_trip(self, service: CatalogService) -> None:
        """Create with {A, B}, update to {B, C}, read back exactly {B, C}."""
        a = await service.create_category("A")
        b = await service.create_category("B")
        c = await service.create_category("C")

        created = await service.create_product({"name": "Item", "price": 5}, [a.id, b.id])
        assert category_names(await service.get_product(created.id)) == {"A", "B"}

        await service.update_product(created.id, {}, category_ids=[b.id, c.id])
        assert category_names(await service.get_product(created.id)) == {"B", "C"}

    @pytest.mark.asyncio
    async def test_updated_at_stamped(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Any update moves updated_at forward."""
        widget_id = tools_and_electronics["Widget"]
        before = await service.get_product(widget_id)

        updated = await service.update_product(widget_id, {"name": "Widget II"})

        assert updated.name == "Widget II"
        assert updated.updated_at >= before.updated_at
        assert updated.created_at == before.created_at

    @pytest.mark.asyncio
    async def test_missing_product(self, service: CatalogService) -> None:
        """Updating an unknown id raises ProductNotFoundError."""
        with pytest.raises(ProductNotFoundError):
            await service.update_product("missing", {"name": "X"})

    @pytest.mark.asyncio
    async def test_unknown_category_leaves_links(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """A rejected replacement keeps the previous links."""
        gadget_id = tools_and_electronics["Gadget"]

        with pytest.raises(PayloadValidationError):
            await service.update_product(gadget_id, {}, category_ids=["missing"])

        assert await link_count(service.session, gadget_id) == 2

    @pytest.mark.asyncio
    async def test_failed_link_insert_rolls_back(
        self,
        service: CatalogService,
        session_factory: async_sessionmaker[AsyncSession],
        tools_and_electronics: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A failure after the old links were deleted restores them."""
        gadget_id = tools_and_electronics["Gadget"]

        async def failing_add(product_id, category_ids):
            raise SQLAlchemyError("simulated failure")

        monkeypatch.setattr(service.products, "add_categories", failing_add)

        with pytest.raises(StoreFailureError):
            await service.update_product(
                gadget_id,
                {"name": "Renamed"},
                category_ids=[tools_and_electronics["Tools"]],
            )

        async with session_factory() as fresh:
            product = await CatalogService(fresh).get_product(gadget_id)
        assert product.name == "Gadget"
        assert category_names(product) == {"Tools", "Electronics"}


class TestConcurrentReaders:
    """Readers outside a write transaction see committed links only."""

    @pytest.mark.asyncio
    async def test_reader_never_sees_half_replaced_links(
        self,
        service: CatalogService,
        session_factory: async_sessionmaker[AsyncSession],
        tools_and_electronics: dict[str, str],
    ) -> None:
        """Between delete and commit a reader still sees the old set."""
        ids = tools_and_electronics
        gadget_id = ids["Gadget"]

        async with session_factory() as writer:
            repo = ProductRepository(writer)
            await repo.clear_categories(gadget_id)

            async with session_factory() as reader:
                during = await CatalogService(reader).get_product(gadget_id)
            assert category_names(during) == {"Tools", "Electronics"}

            await repo.add_categories(gadget_id, [ids["Electronics"]])

            async with session_factory() as reader:
                still = await CatalogService(reader).get_product(gadget_id)
            assert category_names(still) == {"Tools", "Electronics"}

            await writer.commit()

        async with session_factory() as reader:
            after = await CatalogService(reader).get_product(gadget_id)
        assert category_names(after) == {"Electronics"}


class TestDeleteProduct:
    """Tests for product deletion."""

    @pytest.mark.asyncio
    async def test_delete_removes_links(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """No association rows remain and category filters no longer find it."""
        ids = tools_and_electronics
        await service.delete_product(ids["Gadget"])

        assert await link_count(service.session, ids["Gadget"]) == 0
        page = await service.search_products(ProductQuery(category_id=ids["Electronics"]))
        assert page.total == 0
        with pytest.raises(ProductNotFoundError):
            await service.get_product(ids["Gadget"])

    @pytest.mark.asyncio
    async def test_delete_missing(self, service: CatalogService) -> None:
        """Deleting an unknown id raises ProductNotFoundError."""
        with pytest.raises(ProductNotFoundError):
            await service.delete_product("missing")


class TestCategories:
    """Tests for category operations."""

    @pytest.mark.asyncio
    async def test_list_sorted_with_counts(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Categories are sorted by name with product counts."""
        categories = await service.list_categories()
        assert [(c.name, c.product_count) for c in categories] == [
            ("Electronics", 1),
            ("Tools", 2),
        ]

    @pytest.mark.asyncio
    async def test_rename(self, service: CatalogService) -> None:
        """update_category changes the name."""
        category = await service.create_category("Old")
        renamed = await service.update_category(category.id, " New ")
        assert renamed.name == "New"

    @pytest.mark.asyncio
    async def test_delete_unlinks_products(
        self, service: CatalogService, tools_and_electronics: dict[str, str]
    ) -> None:
        """Deleting a category keeps its products and drops the links."""
        ids = tools_and_electronics
        await service.delete_category(ids["Tools"])

        gadget = await service.get_product(ids["Gadget"])
        widget = await service.get_product(ids["Widget"])
        assert category_names(gadget) == {"Electronics"}
        assert widget.categories == []

    @pytest.mark.asyncio
    async def test_missing_category(self, service: CatalogService) -> None:
        """Unknown category ids raise CategoryNotFoundError."""
        with pytest.raises(CategoryNotFoundError):
            await service.get_category("missing")
        with pytest.raises(CategoryNotFoundError):
            await service.update_category("missing", "Name")
        with pytest.raises(CategoryNotFoundError):
            await service.delete_category("missing")


class TestValidation:
    """Tests for field validation helpers."""

    def test_create_requires_name_and_price(self) -> None:
        """Both name and price must be present on create."""
        with pytest.raises(PayloadValidationError) as exc_info:
            validate_product_fields({}, partial=False)
        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"name", "price"}

    def test_partial_allows_missing(self) -> None:
        """A partial update may omit every field."""
        assert validate_product_fields({}, partial=True) == {}

    @pytest.mark.parametrize(
        "data",
        [
            {"price": "1.234"},
            {"price": "abc"},
            {"price": None},
            {"stock_quantity": -1},
            {"stock_quantity": 1.5},
            {"stock_quantity": True},
            {"name": "   "},
            {"name": None},
            {"colour": "red"},
        ],
    )
    def test_invalid_partial_fields(self, data: dict) -> None:
        """Invalid values are reported, not coerced."""
        with pytest.raises(PayloadValidationError):
            validate_product_fields(data, partial=True)

    def test_description_may_be_cleared(self) -> None:
        """Optional text fields accept None."""
        assert validate_product_fields({"description": None}, partial=True) == {
            "description": None
        }

    def test_category_name(self) -> None:
        """Category names are stripped and must not be blank."""
        assert validate_category_name("  Garden ") == "Garden"
        with pytest.raises(PayloadValidationError):
            validate_category_name(" ")
