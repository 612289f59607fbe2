"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_manager.infrastructure.database import get_session
from catalog_manager.main import app


@pytest.fixture
def client(session_factory: async_sessionmaker[AsyncSession]):
    """Create test client backed by the per-test database."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_category(client: TestClient):
    """Create a category through the API and return its JSON."""

    def _make(name: str) -> dict:
        response = client.post("/api/categories", json={"name": name})
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_product(client: TestClient):
    """Create a product through the API and return its JSON."""

    def _make(name: str, price: str, category_ids: list[str], stock: int = 0, **extra) -> dict:
        payload = {
            "name": name,
            "price": price,
            "stockQuantity": stock,
            "categoryIds": category_ids,
            **extra,
        }
        response = client.post("/api/products", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
