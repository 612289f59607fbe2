#!/usr/bin/env python3
"""Seed product catalog script.

Creates a deterministic set of demo categories and products.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --products 200 --seed 7
    python scripts/seed_catalog.py --no-clear
"""

import argparse
import asyncio
import random
from decimal import Decimal

from sqlalchemy import delete

from catalog_manager.catalog.models import Category, Product, ProductCategory
from catalog_manager.catalog.service import CatalogService
from catalog_manager.infrastructure.database import async_session_factory, create_tables

CATEGORY_NAMES = [
    "Electronics",
    "Garden",
    "Home",
    "Kitchen",
    "Office",
    "Outdoors",
    "Sports",
    "Tools",
    "Toys",
]

ADJECTIVES = ["Compact", "Deluxe", "Eco", "Heavy-Duty", "Mini", "Pro", "Smart", "Ultra"]
NOUNS = ["Blender", "Drill", "Gadget", "Lamp", "Organizer", "Speaker", "Tent", "Widget"]


async def clear_catalog() -> None:
    """Delete every product, category and association row."""
    async with async_session_factory() as session:
        await session.execute(delete(ProductCategory))
        await session.execute(delete(Product))
        await session.execute(delete(Category))
        await session.commit()


async def seed(product_count: int, seed_value: int) -> dict[str, int]:
    """Create categories and products.

    Args:
        product_count: Number of products to create.
        seed_value: Random seed for reproducible data.

    Returns:
        Seeding result with counts.
    """
    rng = random.Random(seed_value)

    async with async_session_factory() as session:
        service = CatalogService(session)

        category_ids = []
        for name in CATEGORY_NAMES:
            category = await service.create_category(name)
            category_ids.append(category.id)

        links = 0
        for index in range(product_count):
            name = f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)} {index + 1:03d}"
            chosen = rng.sample(category_ids, k=rng.randint(1, 3))
            await service.create_product(
                {
                    "name": name,
                    "description": f"Demo product {index + 1}",
                    "price": Decimal(rng.randint(199, 49999)) / 100,
                    "stock_quantity": rng.randint(0, 250),
                },
                chosen,
            )
            links += len(chosen)

    return {
        "categories_created": len(category_ids),
        "products_created": product_count,
        "links_created": links,
    }


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed the product catalog with demo data",
    )
    parser.add_argument(
        "--products",
        type=int,
        default=50,
        help="Number of products to create (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed (default: 42)",
    )
    parser.add_argument(
        "--no-clear",
        action="store_true",
        help="Don't clear the existing catalog before seeding",
    )

    args = parser.parse_args()

    print("=" * 60)
    print("Catalog Seeder")
    print("=" * 60)
    print(f"Products: {args.products}")
    print(f"Clear existing: {not args.no_clear}")
    print()

    print("Creating database tables...")
    await create_tables()
    print("Tables ready.")
    print()

    if not args.no_clear:
        print("Clearing existing catalog...")
        await clear_catalog()

    result = await seed(args.products, args.seed)

    print(f"  ✓ Categories: {result['categories_created']}")
    print(f"  ✓ Products: {result['products_created']}")
    print(f"  ✓ Category links: {result['links_created']}")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
