"""Product listing parameters.

Turns raw query-string values into a typed, defaulted ProductQuery.
Anything malformed or contradictory raises InvalidFilterError; no
value is ever clamped or silently replaced by a default.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from catalog_manager.domain.exceptions import InvalidFilterError
from catalog_manager.infrastructure.config import settings

RawValue = str | int | Decimal | None


class SortField(str, Enum):
    """Columns a product listing can be sorted by."""

    NAME = "name"
    PRICE = "price"
    STOCK = "stock"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class ProductQuery:
    """Canonical filter, sort and pagination parameters for a product listing.

    Attributes:
        page: Page number (1-indexed).
        limit: Items per page.
        search: Case-insensitive substring of the product name.
        category_id: Single category filter.
        category_ids: Multiple category filter (any of); wins over category_id.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        min_stock: Inclusive lower stock bound; may be fractional.
        max_stock: Inclusive upper stock bound; may be fractional.
        sort_by: Sort column.
        sort_order: Sort direction.
    """

    page: int = 1
    limit: int = 10
    search: str | None = None
    category_id: str | None = None
    category_ids: tuple[str, ...] = ()
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    min_stock: Decimal | None = None
    max_stock: Decimal | None = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.limit

    @property
    def effective_category_ids(self) -> tuple[str, ...]:
        """Category ids the listing is restricted to, if any.

        A non-empty category_ids replaces category_id entirely.
        Duplicates are dropped, first occurrence kept.
        """
        if self.category_ids:
            ids = self.category_ids
        elif self.category_id:
            ids = (self.category_id,)
        else:
            ids = ()
        return tuple(dict.fromkeys(ids))


def parse_product_query(
    *,
    page: RawValue = None,
    limit: RawValue = None,
    search: str | None = None,
    category_id: str | None = None,
    category_ids: str | Sequence[str] | None = None,
    min_price: RawValue = None,
    max_price: RawValue = None,
    min_stock: RawValue = None,
    max_stock: RawValue = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    default_limit: int | None = None,
    max_limit: int | None = None,
) -> ProductQuery:
    """Parse raw listing parameters into a ProductQuery.

    Args:
        page: Page number, default 1.
        limit: Page size, default ``default_limit``.
        search: Name search text; blank means no filter.
        category_id: Single category id.
        category_ids: Repeated values and/or comma-separated strings.
        min_price: Lower price bound.
        max_price: Upper price bound.
        min_stock: Lower stock bound.
        max_stock: Upper stock bound.
        sort_by: One of name, price, stock, createdAt.
        sort_order: asc or desc.
        default_limit: Page size when none given (settings by default).
        max_limit: Largest accepted page size (settings by default).

    Returns:
        Normalized query.

    Raises:
        InvalidFilterError: On the first parameter that fails to parse.
    """
    default_limit = default_limit or settings.default_page_size
    max_limit = max_limit or settings.max_page_size

    parsed_page = _parse_page_number("page", page, default=1)
    parsed_limit = _parse_page_number("limit", limit, default=default_limit)
    if parsed_limit > max_limit:
        raise InvalidFilterError("limit", f"limit cannot be greater than {max_limit}")

    low_price = _parse_bound("minPrice", min_price)
    high_price = _parse_bound("maxPrice", max_price)
    _check_range("minPrice", "maxPrice", low_price, high_price)

    low_stock = _parse_bound("minStock", min_stock)
    high_stock = _parse_bound("maxStock", max_stock)
    _check_range("minStock", "maxStock", low_stock, high_stock)

    return ProductQuery(
        page=parsed_page,
        limit=parsed_limit,
        search=_clean(search),
        category_id=_clean(category_id),
        category_ids=split_category_ids(category_ids),
        min_price=low_price,
        max_price=high_price,
        min_stock=low_stock,
        max_stock=high_stock,
        sort_by=_parse_enum("sortBy", sort_by, SortField, SortField.CREATED_AT),
        sort_order=_parse_enum("sortOrder", sort_order, SortOrder, SortOrder.DESC),
    )


def split_category_ids(raw: str | Sequence[str] | None) -> tuple[str, ...]:
    """Flatten category ids given as a list, a comma string, or both.

    Segments are trimmed and empty ones discarded.
    """
    if raw is None:
        return ()
    values = [raw] if isinstance(raw, str) else list(raw)

    ids: list[str] = []
    for value in values:
        if value is None:
            continue
        ids.extend(part.strip() for part in str(value).split(",") if part.strip())
    return tuple(ids)


def _clean(value: RawValue) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_page_number(field: str, raw: RawValue, default: int) -> int:
    text = _clean(raw)
    if text is None:
        return default
    try:
        number = int(text)
    except ValueError:
        raise InvalidFilterError(field, f"Invalid {field} value") from None
    if number < 1:
        raise InvalidFilterError(field, f"{field} must be at least 1")
    return number


def _parse_bound(field: str, raw: RawValue) -> Decimal | None:
    text = _clean(raw)
    if text is None:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise InvalidFilterError(field, f"Invalid {field} value") from None
    if not value.is_finite() or value < 0:
        raise InvalidFilterError(field, f"Invalid {field} value")
    return value


def _check_range(
    low_field: str,
    high_field: str,
    low: Decimal | None,
    high: Decimal | None,
) -> None:
    if low is not None and high is not None and low > high:
        raise InvalidFilterError(
            low_field, f"{low_field} cannot be greater than {high_field}"
        )


def _parse_enum(field: str, raw: str | None, enum_cls: type[Enum], default: Enum):
    text = _clean(raw)
    if text is None:
        return default
    try:
        return enum_cls(text)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidFilterError(field, f"{field} must be one of: {allowed}") from None
