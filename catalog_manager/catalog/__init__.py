"""Product catalog.

Listing parameters, filter predicates, repositories and the catalog
service for products and categories.
"""

from catalog_manager.catalog.filters import ProductQuery, SortField, SortOrder, parse_product_query
from catalog_manager.catalog.models import Category, Product, ProductCategory
from catalog_manager.catalog.predicates import ProductPredicates, build_predicates
from catalog_manager.catalog.read_models import (
    CategoryRef,
    CategoryWithProductCount,
    ProductPage,
    ProductWithCategories,
)
from catalog_manager.catalog.repository import CategoryRepository, ProductRepository
from catalog_manager.catalog.service import CatalogService

__all__ = [
    # Listing parameters
    "ProductQuery",
    "SortField",
    "SortOrder",
    "parse_product_query",
    # Models
    "Category",
    "Product",
    "ProductCategory",
    # Predicates
    "ProductPredicates",
    "build_predicates",
    # Read models
    "CategoryRef",
    "CategoryWithProductCount",
    "ProductPage",
    "ProductWithCategories",
    # Repositories
    "CategoryRepository",
    "ProductRepository",
    # Service
    "CatalogService",
]
