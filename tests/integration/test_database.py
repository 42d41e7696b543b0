"""
Integration Tests - Record Store Connection
"""
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from src.config import get_settings
from src.database.connection import (
    check_database_health,
    close_database,
    get_db,
    init_database,
)
from src.database.models import Product
from src.ingestion.seed_db import seed_sample_products
from src.serving.api.main import create_api_app

pytestmark = pytest.mark.integration


@pytest.fixture
async def sqlite_store(tmp_path, monkeypatch):
    """File-backed SQLite store initialized through the application path"""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    get_settings.cache_clear()
    await init_database(create_schema=True)
    yield
    await close_database()


async def test_session_commits(sqlite_store):
    async with get_db() as db:
        assert await seed_sample_products(db) == 3

    async with get_db() as db:
        assert await db.scalar(select(func.count()).select_from(Product)) == 3


async def test_session_rolls_back_on_error(sqlite_store):
    with pytest.raises(RuntimeError):
        async with get_db() as db:
            await seed_sample_products(db)
            raise RuntimeError("boom")

    async with get_db() as db:
        assert await db.scalar(select(func.count()).select_from(Product)) == 0


async def test_health_reports_store(sqlite_store):
    health = await check_database_health()

    assert health["status"] == "healthy"
    assert health["latency_ms"] >= 0


async def test_uninitialized_store_is_unhealthy():
    health = await check_database_health()

    assert health["status"] == "unhealthy"
    assert "not initialized" in health["error"]


async def test_readiness_probe(sqlite_store):
    transport = ASGITransport(app=create_api_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ready = await ac.get("/api/v1/health/ready")
        health = await ac.get("/api/v1/health")

    assert ready.status_code == 200
    assert ready.json() == {"status": "ready"}
    assert health.json()["status"] == "healthy"
    assert "redis" not in health.json()["checks"]


async def test_readiness_probe_without_store():
    transport = ASGITransport(app=create_api_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/v1/health/ready")

    assert response.status_code == 503
    assert response.json()["reason"] == "database_unavailable"
