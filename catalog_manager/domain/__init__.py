"""Domain layer: catalog error taxonomy."""

from catalog_manager.domain.exceptions import (
    CatalogError,
    CategoryNotFoundError,
    InvalidFilterError,
    NotFoundError,
    PayloadValidationError,
    ProductNotFoundError,
    StoreFailureError,
)

__all__ = [
    "CatalogError",
    "CategoryNotFoundError",
    "InvalidFilterError",
    "NotFoundError",
    "PayloadValidationError",
    "ProductNotFoundError",
    "StoreFailureError",
]
