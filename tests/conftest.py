"""Shared fixtures for catalog tests.

Each test gets its own SQLite database file so that separate sessions
use separate connections and observe real transaction isolation.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from catalog_manager.catalog import models  # noqa: F401
from catalog_manager.catalog.service import CatalogService
from catalog_manager.infrastructure.database import Base, build_engine, build_session_factory


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Path of the per-test SQLite database."""
    return tmp_path / "catalog.db"


@pytest.fixture
def session_factory(database_path: Path) -> async_sessionmaker[AsyncSession]:
    """Create the schema and return a session factory bound to it."""
    sync_engine = create_engine(f"sqlite:///{database_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = build_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]):
    """Open a session for the duration of a test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(session: AsyncSession) -> CatalogService:
    """Catalog service bound to the test session."""
    return CatalogService(session)


@pytest_asyncio.fixture
async def tools_and_electronics(service: CatalogService) -> dict[str, str]:
    """Create a Widget in Tools and a Gadget in Tools and Electronics.

    Returns:
        Mapping of names (categories and products) to ids.
    """
    tools = await service.create_category("Tools")
    electronics = await service.create_category("Electronics")

    widget = await service.create_product(
        {"name": "Widget", "price": Decimal("9.99"), "stock_quantity": 5},
        [tools.id],
    )
    gadget = await service.create_product(
        {"name": "Gadget", "price": Decimal("19.99"), "stock_quantity": 0},
        [tools.id, electronics.id],
    )
    return {
        "Tools": tools.id,
        "Electronics": electronics.id,
        "Widget": widget.id,
        "Gadget": gadget.id,
    }
