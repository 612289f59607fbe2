"""API schemas for the catalog API.

Pydantic models for request/response validation and serialization.
JSON keys are camelCase; snake_case input is accepted as well.
"""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorDetail(BaseModel):
    """Detailed error information."""

    field: str | None = Field(default=None, description="Field that caused the error")
    message: str = Field(..., description="Error message")


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: list[ErrorDetail] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Category Schemas
# ============================================================================


class CategoryRefSchema(CamelModel):
    """Category as attached to a product."""

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Category name")


class CategoryResponse(CamelModel):
    """Category with its product count."""

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Category name")
    created_at: datetime = Field(..., description="When the category was created")
    product_count: int = Field(default=0, description="Distinct products in this category")

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class CategoryCreateRequest(CamelModel):
    """Request to create a category."""

    name: str = Field(..., min_length=1, max_length=100, description="Category name")


class CategoryUpdateRequest(CamelModel):
    """Request to rename a category."""

    name: str = Field(..., min_length=1, max_length=100, description="New category name")


# ============================================================================
# Product Schemas
# ============================================================================


class ProductResponse(CamelModel):
    """A product with its categories."""

    id: str = Field(..., description="Product identifier")
    name: str = Field(..., description="Product name")
    description: str | None = Field(default=None, description="Product description")
    price: Decimal = Field(..., description="Price as an exact decimal string")
    stock_quantity: int = Field(..., description="Units in stock")
    image_url: str | None = Field(default=None, description="Product image URL")
    created_at: datetime = Field(..., description="When the product was created")
    updated_at: datetime = Field(..., description="When the product was last updated")
    categories: list[CategoryRefSchema] = Field(
        default_factory=list, description="Associated categories"
    )

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ProductListResponse(CamelModel):
    """One page of products and the total match count."""

    products: list[ProductResponse] = Field(..., description="Products on this page")
    total: int = Field(..., description="Products matching the filter across all pages")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages for this filter")


class ProductCreateRequest(CamelModel):
    """Request to create a product."""

    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    description: str | None = Field(default=None, description="Product description")
    price: Decimal = Field(
        ..., ge=0, max_digits=10, decimal_places=2, description="Unit price"
    )
    stock_quantity: int = Field(default=0, ge=0, description="Units in stock")
    image_url: str | None = Field(default=None, max_length=1000, description="Image URL")
    category_ids: list[str] = Field(
        ..., min_length=1, description="Categories to link (at least one)"
    )


class ProductUpdateRequest(CamelModel):
    """Partial product update.

    Omitting categoryIds keeps the current categories; an empty list
    removes them all.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)
    image_url: str | None = Field(default=None, max_length=1000)
    category_ids: list[str] | None = Field(
        default=None, description="Replacement category set"
    )
