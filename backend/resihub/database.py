"""
ResiHub Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engines for the central database and every tenant
       (apartment) database, session factories, and the FastAPI dependency.
How:   `DatabaseRegistry` owns one central engine plus a cache of tenant
       engines keyed by database name. Engines are created lazily on first
       use; SQLAlchemy's pool handles the connections behind each engine.
Who:   Created by the application factory and stored on `app.state`;
       route dependencies receive it from there.
When:  Central session per request; tenant sessions on demand while the
       identity resolver scans apartments.

Session Lifecycle:
    central_session() / tenant_session() yield an AsyncSession that commits on
    success, rolls back on error and always closes.
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from resihub.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


# ── Base Models ───────────────────────────────────────────────────────────
# Two metadata collections: one per database kind. Alembic migrates them
# as separate branches (see alembic/env.py).
class CentralBase(DeclarativeBase):
    """Base class for tables living in the central database."""
    pass


class TenantBase(DeclarativeBase):
    """Base class for tables replicated in every apartment database."""
    pass


_NON_IDENTIFIER = re.compile(r"[^a-z0-9]+")


def tenant_database_name(apartment_name: str) -> str:
    """
    Map an apartment name to its database name.

    "Oakwood Heights" → "oakwood_heights". Raises ValueError for names with
    no usable characters.
    """
    slug = _NON_IDENTIFIER.sub("_", apartment_name.strip().lower()).strip("_")
    if not slug:
        raise ValueError(f"Apartment name {apartment_name!r} cannot be mapped to a database")
    return slug


def _build_engine(url: str, config: Settings) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    kwargs = {
        "pool_pre_ping": config.db_pool_pre_ping,
        "echo": config.log_level == "DEBUG",
    }
    if make_url(url).get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_recycle=3600,
        )
    return create_async_engine(url, **kwargs)


class DatabaseRegistry:
    """
    Owner of every database handle the process uses.

    Contract:
        - central_session(): session on the central database
        - tenant_session(name): session on the named apartment's database
        - dispose(): close all pooled connections (application shutdown)

    Tenant engines are never pre-opened; the first login that needs a tenant
    creates its engine and later requests reuse it.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self._central_engine: Optional[AsyncEngine] = None
        self._central_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._tenant_factories: Dict[str, async_sessionmaker[AsyncSession]] = {}
        self._tenant_engines: Dict[str, AsyncEngine] = {}

    @property
    def central_engine(self) -> AsyncEngine:
        self._central_sessions()
        return self._central_engine

    def _central_sessions(self) -> async_sessionmaker[AsyncSession]:
        if self._central_factory is None:
            self._central_engine = _build_engine(self.config.database_url, self.config)
            self._central_factory = async_sessionmaker(
                self._central_engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._central_factory

    def tenant_url(self, apartment_name: str) -> str:
        return self.config.tenant_database_url_template.format(
            database=tenant_database_name(apartment_name)
        )

    def tenant_engine(self, apartment_name: str) -> AsyncEngine:
        """Return (creating on first use) the engine of an apartment database."""
        db_name = tenant_database_name(apartment_name)
        engine = self._tenant_engines.get(db_name)
        if engine is None:
            engine = _build_engine(self.tenant_url(apartment_name), self.config)
            self._tenant_engines[db_name] = engine
            self._tenant_factories[db_name] = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info("Opened tenant database: %s (%s)", apartment_name, db_name)
        return engine

    @asynccontextmanager
    async def central_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with _managed(self._central_sessions()) as session:
            yield session

    @asynccontextmanager
    async def tenant_session(self, apartment_name: str) -> AsyncGenerator[AsyncSession, None]:
        self.tenant_engine(apartment_name)
        factory = self._tenant_factories[tenant_database_name(apartment_name)]
        async with _managed(factory) as session:
            yield session

    async def dispose(self) -> None:
        """
        What:  Gracefully closes all connections of all engines.
        When:  Called during application shutdown (lifespan handler).
        """
        for name, engine in self._tenant_engines.items():
            await engine.dispose()
            logger.debug("Disposed tenant engine %s", name)
        self._tenant_engines.clear()
        self._tenant_factories.clear()
        if self._central_engine is not None:
            await self._central_engine.dispose()
            self._central_engine = None
            self._central_factory = None


@asynccontextmanager
async def _managed(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Commit on success, roll back on any error, always close."""
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Dependencies ──────────────────────────────────────────────────────────
def get_databases(request: Request) -> DatabaseRegistry:
    """FastAPI dependency returning the registry owned by the application."""
    return request.app.state.databases


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a central database session per request.

    Example usage in a route:
        @router.get("/service/{id}")
        async def get_service(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with get_databases(request).central_session() as session:
        yield session
