"""Domain exceptions.

All catalog-level errors. The API layer maps each class to an HTTP
status and a machine-readable error code; nothing below the API layer
knows about HTTP.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for all catalog exceptions.

    All catalog errors should inherit from this class to allow
    catching them at the API layer.
    """

    error_code = "CATALOG_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize catalog error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Client Errors
# ============================================================================


class InvalidFilterError(CatalogError):
    """Raised when a listing parameter is malformed or contradictory.

    Covers non-numeric or negative ranges, min greater than max, and
    values outside an enumerated set. Never raised after a query ran.
    """

    error_code = "INVALID_FILTER"

    def __init__(self, field: str, message: str) -> None:
        """Initialize invalid filter error.

        Args:
            field: Query parameter that failed to parse.
            message: Explanation of the failure.
        """
        super().__init__(message, details={"field": field})
        self.field = field


class PayloadValidationError(CatalogError):
    """Raised when a write payload violates the catalog rules."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        """Initialize payload validation error.

        Args:
            message: Summary message.
            errors: Per-field problems as ``{"field": ..., "message": ...}``.
        """
        super().__init__(message, details={"errors": errors or []})
        self.errors = errors or []


# ============================================================================
# Lookup Errors
# ============================================================================


class NotFoundError(CatalogError):
    """Base class for missing entities."""

    error_code = "NOT_FOUND"
    entity_type = "Entity"

    def __init__(self, entity_id: str) -> None:
        """Initialize not found error.

        Args:
            entity_id: ID that was looked up.
        """
        super().__init__(
            f"{self.entity_type} not found: {entity_id}",
            details={"entity_id": entity_id},
        )
        self.entity_id = entity_id


class ProductNotFoundError(NotFoundError):
    """Raised when a product ID does not exist."""

    error_code = "PRODUCT_NOT_FOUND"
    entity_type = "Product"


class CategoryNotFoundError(NotFoundError):
    """Raised when a category ID does not exist."""

    error_code = "CATEGORY_NOT_FOUND"
    entity_type = "Category"


# ============================================================================
# Store Errors
# ============================================================================


class StoreFailureError(CatalogError):
    """Raised when the underlying database operation fails.

    The original exception is chained; the message is safe to show
    to clients.
    """

    error_code = "STORE_FAILURE"

    def __init__(self, operation: str) -> None:
        """Initialize store failure error.

        Args:
            operation: Name of the catalog operation that failed.
        """
        super().__init__(
            "A storage error occurred",
            details={"operation": operation},
        )
        self.operation = operation
