"""
Tests for health check router.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from census.database import get_db
from census.main import app
from census.tests.conftest import make_submission


class TestHealthRouter:
    """Tests for the health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        """Test basic health check returns 200."""
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["unprocessed_results"] == 0
        assert "version" in data

    @pytest.mark.asyncio
    async def test_health_reports_backlog(self, client: AsyncClient, store_result):
        """Test stored but unprocessed results are counted."""
        await store_result(make_submission())
        response = await client.get("/health")
        assert response.json()["unprocessed_results"] == 1

    @pytest.mark.asyncio
    async def test_readiness(self, client: AsyncClient):
        """Test readiness passes once the schema exists."""
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"ready": True, "missing_tables": []}

    @pytest.mark.asyncio
    async def test_not_ready_without_schema(self, client: AsyncClient):
        """Test readiness fails with 503 against an empty database."""
        empty_engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        empty_factory = async_sessionmaker(empty_engine, class_=AsyncSession)

        async def override_get_db():
            async with empty_factory() as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db
        try:
            response = await client.get("/ready")
        finally:
            await empty_engine.dispose()

        assert response.status_code == 503
        data = response.json()
        assert data["ready"] is False
        assert "raw_results" in data["missing_tables"]
        assert "devices" in data["missing_tables"]

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client: AsyncClient):
        """Test root endpoint returns API info."""
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Android Census"
        assert "version" in data
        assert "description" in data
