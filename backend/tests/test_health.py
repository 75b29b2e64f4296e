"""
ResiHub Backend — Health and Middleware Tests
===============================================
"""

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from resihub import __version__
from resihub.config import Settings
from resihub.database import DatabaseRegistry
from resihub.main import create_app
from resihub.middleware.logging import level_for_status
from resihub.middleware.rate_limit import RateLimitMiddleware


class TestHealth:

    @pytest.mark.asyncio
    async def test_root_is_plain_text(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.text == "Backend is running"

    @pytest.mark.asyncio
    async def test_health_with_database(self, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["version"] == __version__
        assert body["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_health_without_database(self, tmp_path):
        broken = DatabaseRegistry(
            Settings(database_url=f"sqlite+aiosqlite:///{tmp_path}/missing/dir/central.db")
        )
        app = create_app(databases=broken)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"
        await broken.dispose()


def limited_app(max_requests):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, max_requests=max_requests, window=60)

    @app.get("/")
    async def root():
        return {"ok": True}

    @app.get("/api/things")
    async def things():
        return {"ok": True}

    return app


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_limit_returns_429_with_retry_after(self):
        app = limited_app(max_requests=2)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/api/things")).status_code for _ in range(3)]
            limited = await client.get("/api/things")

        assert statuses == [200, 200, 429]
        assert limited.status_code == 429
        assert set(limited.json()) == {"message"}
        assert 1 <= int(limited.headers["Retry-After"]) <= 61

    @pytest.mark.asyncio
    async def test_root_is_never_limited(self):
        app = limited_app(max_requests=1)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get("/")).status_code for _ in range(3)]

        assert statuses == [200, 200, 200]


class TestAccessLogLevels:

    @pytest.mark.parametrize("status,level", [(200, 20), (302, 20), (404, 30), (503, 40)])
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level
