"""Category API endpoints.

Provides CRUD endpoints for categories. Listing returns every category
ordered by name together with its product count.
"""

from fastapi import APIRouter, Response, status

from catalog_manager.api.dependencies import CatalogServiceDep
from catalog_manager.api.schemas import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
    ErrorResponse,
)
from catalog_manager.catalog.read_models import CategoryWithProductCount

router = APIRouter(prefix="/api/categories", tags=["Categories"])


def category_to_response(category: CategoryWithProductCount) -> CategoryResponse:
    """Convert CategoryWithProductCount to CategoryResponse."""
    return CategoryResponse(
        id=category.id,
        name=category.name,
        created_at=category.created_at,
        product_count=category.product_count,
    )


@router.get(
    "",
    response_model=list[CategoryResponse],
    summary="List categories",
    description="Get all categories sorted by name with product counts.",
)
async def list_categories(service: CatalogServiceDep) -> list[CategoryResponse]:
    """List all categories."""
    categories = await service.list_categories()
    return [category_to_response(category) for category in categories]


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get category",
)
async def get_category(category_id: str, service: CatalogServiceDep) -> CategoryResponse:
    """Get a category by ID."""
    category = await service.get_category(category_id)
    return category_to_response(category)


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create category",
)
async def create_category(
    request: CategoryCreateRequest,
    service: CatalogServiceDep,
) -> CategoryResponse:
    """Create a category."""
    category = await service.create_category(request.name)
    return category_to_response(category)


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Update category",
)
async def update_category(
    category_id: str,
    request: CategoryUpdateRequest,
    service: CatalogServiceDep,
) -> CategoryResponse:
    """Rename a category."""
    category = await service.update_category(category_id, request.name)
    return category_to_response(category)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse}},
    summary="Delete category",
)
async def delete_category(category_id: str, service: CatalogServiceDep) -> Response:
    """Delete a category and unlink it from all products."""
    await service.delete_category(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
