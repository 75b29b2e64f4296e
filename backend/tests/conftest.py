"""
ResiHub Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Unit tests use mocks; integration tests use throwaway SQLite files
       (aiosqlite) for the central database and for each tenant database.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock standing in for AsyncSession
    ├── hashed_password:  bcrypt hash of "secret1" (cheap rounds)
    ├── databases:        DatabaseRegistry over SQLite files, central tables created
    ├── add_tenant:       registers an apartment and creates its tenant tables
    ├── fake_storage:     MagicMock StorageService (no network)
    └── test_client:      HTTPX AsyncClient bound to an app using `databases`
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any resihub import: settings are read at import time
_env_dir = tempfile.mkdtemp(prefix="resihub_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_env_dir}/central.db"
os.environ["TENANT_DATABASE_URL_TEMPLATE"] = f"sqlite+aiosqlite:///{_env_dir}/{{database}}.db"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["SPACES_KEY"] = "test-key"
os.environ["SPACES_SECRET"] = "test-secret"
os.environ["SPACES_BUCKET"] = "test-bucket"
os.environ["LOG_LEVEL"] = "WARNING"

from resihub.config import Settings  # noqa: E402
from resihub.database import CentralBase, DatabaseRegistry, TenantBase  # noqa: E402
from resihub.models.identity import Apartment  # noqa: E402
from resihub.services.credentials import hash_password  # noqa: E402
from resihub.services.storage_service import StorageService  # noqa: E402


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture(scope="session")
def hashed_password():
    """bcrypt hash of "secret1"; 4 rounds keeps the suite fast."""
    return hash_password("secret1", rounds=4)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing every database at files under tmp_path."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/central.db",
        tenant_database_url_template=f"sqlite+aiosqlite:///{tmp_path}/{{database}}.db",
        jwt_secret="test-secret-not-real",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def databases(test_settings):
    """DatabaseRegistry with the central schema created; disposed afterwards."""
    registry = DatabaseRegistry(test_settings)
    async with registry.central_engine.begin() as conn:
        await conn.run_sync(CentralBase.metadata.create_all)
    yield registry
    await registry.dispose()


@pytest.fixture
def add_tenant(databases):
    """
    Register an apartment and create its tenant schema.

    Usage:
        await add_tenant("Oakwood", created_offset=0)
    """

    async def _add(name: str, created_offset: int = 0) -> str:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with databases.central_session() as session:
            session.add(
                Apartment(
                    apartment_name=name,
                    created_at=base + timedelta(minutes=created_offset),
                )
            )
        async with databases.tenant_engine(name).begin() as conn:
            await conn.run_sync(TenantBase.metadata.create_all)
        return name

    return _add


@pytest.fixture
def add_identity(databases, hashed_password):
    """
    Insert one identity row; password defaults to "secret1".

    Usage:
        await add_identity(Manager, tenant="Oakwood", email="a@x.com", status="approved")
    """

    async def _add(model, tenant=None, **fields):
        fields.setdefault("name", "Test User")
        fields.setdefault("password_hash", hashed_password)
        row = model(**fields)
        scope = databases.tenant_session(tenant) if tenant else databases.central_session()
        async with scope as session:
            session.add(row)
            await session.flush()
        return row

    return _add


@pytest.fixture
def fake_storage():
    """
    StorageService double: uploads return a predictable public URL.
    """
    storage = MagicMock(spec=StorageService)
    storage.upload_bytes.side_effect = (
        lambda data, object_name, content_type: f"https://test-bucket.example.com/{object_name}"
    )
    storage.delete_object.return_value = True
    storage.object_name_from_url.side_effect = (
        lambda url, prefix: f"{prefix}/{url.rsplit('/', 1)[-1]}"
    )
    return storage


@pytest.fixture
def test_app(databases):
    """Fresh application bound to the `databases` registry."""
    from resihub.main import create_app

    app = create_app(databases=databases)
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    Provides an async HTTP client for endpoint testing.

    ASGITransport does not run the lifespan, so the registry is disposed by
    the `databases` fixture only. Unhandled exceptions come back as 500
    responses instead of being re-raised into the test.
    """
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
