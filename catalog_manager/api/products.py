"""Product API endpoints.

Provides endpoints for the product catalog:
- GET /api/products - filtered, sorted, paginated listing
- GET /api/products/{id} - product with categories
- POST /api/products - create a product
- PUT /api/products/{id} - partial update
- DELETE /api/products/{id} - delete a product
"""

from fastapi import APIRouter, Query, Response, status

from catalog_manager.api.dependencies import CatalogServiceDep
from catalog_manager.api.schemas import (
    CategoryRefSchema,
    ErrorResponse,
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductUpdateRequest,
)
from catalog_manager.catalog.filters import parse_product_query
from catalog_manager.catalog.read_models import ProductPage, ProductWithCategories

router = APIRouter(prefix="/api/products", tags=["Products"])


# ============================================================================
# Converters
# ============================================================================


def product_to_response(product: ProductWithCategories) -> ProductResponse:
    """Convert ProductWithCategories to ProductResponse."""
    return ProductResponse(
        id=product.id,
        name=product.name,
        description=product.description,
        price=product.price,
        stock_quantity=product.stock_quantity,
        image_url=product.image_url,
        created_at=product.created_at,
        updated_at=product.updated_at,
        categories=[
            CategoryRefSchema(id=category.id, name=category.name)
            for category in product.categories
        ],
    )


def page_to_response(page: ProductPage) -> ProductListResponse:
    """Convert ProductPage to ProductListResponse."""
    return ProductListResponse(
        products=[product_to_response(product) for product in page.products],
        total=page.total,
        page=page.page,
        limit=page.limit,
        total_pages=page.total_pages,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=ProductListResponse,
    responses={400: {"model": ErrorResponse}},
    summary="List products",
    description="Get a paginated list of products with optional filtering and sorting.",
)
async def list_products(
    service: CatalogServiceDep,
    page: str | None = Query(default=None, description="Page number (1-based)"),
    limit: str | None = Query(default=None, description="Items per page"),
    search: str | None = Query(default=None, description="Substring of the product name"),
    category_id: str | None = Query(
        default=None, alias="categoryId", description="Single category filter"
    ),
    category_ids: list[str] | None = Query(
        default=None,
        alias="categoryIds",
        description="Category filter, repeated or comma-separated; wins over categoryId",
    ),
    min_price: str | None = Query(default=None, alias="minPrice"),
    max_price: str | None = Query(default=None, alias="maxPrice"),
    min_stock: str | None = Query(default=None, alias="minStock"),
    max_stock: str | None = Query(default=None, alias="maxStock"),
    sort_by: str | None = Query(
        default=None, alias="sortBy", description="name, price, stock or createdAt"
    ),
    sort_order: str | None = Query(default=None, alias="sortOrder", description="asc or desc"),
) -> ProductListResponse:
    """List products matching the given filters.

    Parameters arrive as raw strings and are normalized by
    parse_product_query, so malformed values produce a 400 with a
    field-specific message rather than a generic schema error.

    Returns:
        Page of products with categories and the total count.
    """
    query = parse_product_query(
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        category_ids=category_ids,
        min_price=min_price,
        max_price=max_price,
        min_stock=min_stock,
        max_stock=max_stock,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    result = await service.search_products(query)
    return page_to_response(result)


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get product",
)
async def get_product(product_id: str, service: CatalogServiceDep) -> ProductResponse:
    """Get a product by ID."""
    product = await service.get_product(product_id)
    return product_to_response(product)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create product",
)
async def create_product(
    request: ProductCreateRequest,
    service: CatalogServiceDep,
) -> ProductResponse:
    """Create a product and link it to its categories."""
    product = await service.create_product(
        request.model_dump(exclude={"category_ids"}),
        request.category_ids,
    )
    return product_to_response(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Update product",
    description="Partially update a product. Omit categoryIds to keep the current categories.",
)
async def update_product(
    product_id: str,
    request: ProductUpdateRequest,
    service: CatalogServiceDep,
) -> ProductResponse:
    """Apply a partial update to a product.

    Only fields present in the body are changed.
    """
    product = await service.update_product(
        product_id,
        request.model_dump(exclude_unset=True, exclude={"category_ids"}),
        category_ids=request.category_ids,
    )
    return product_to_response(product)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(product_id: str, service: CatalogServiceDep) -> Response:
    """Delete a product and its category links."""
    await service.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
