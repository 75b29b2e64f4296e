"""
ResiHub Backend — SQL Identity Stores
=======================================

What:  SQLAlchemy implementations of IdentityStore and TenantRegistry.
How:   One adapter per lookup scope, each a thin binding of an ORM model and
       a role onto `SqlIdentityStore`. `sql_tenant_scope()` opens a tenant
       session on demand and yields that tenant's stores in search order
       (residents first, then managers).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Callable, List, Optional, Sequence, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from resihub.database import DatabaseRegistry
from resihub.models.identity import (
    Apartment,
    CentralManager,
    IdentityColumns,
    Manager,
    Resident,
    ServiceProvider,
)
from resihub.services.identity import Identity, IdentityStore, Role, Status, TenantRegistry

logger = logging.getLogger(__name__)

TenantScope = Callable[[str], AsyncContextManager[Sequence[IdentityStore]]]


class SqlIdentityStore(IdentityStore):
    """Looks up `model.email == email` in one table of one database."""

    model: Type[IdentityColumns]
    role: Role

    def __init__(self, session: AsyncSession, tenant_name: Optional[str] = None):
        self.session = session
        self.tenant_name = tenant_name

    async def find_one(self, email: str) -> Optional[Identity]:
        result = await self.session.execute(
            select(self.model).where(self.model.email == email)
        )
        record = result.scalar_one_or_none()
        if record is None:
            return None
        return self.to_identity(record)

    def to_identity(self, record: IdentityColumns) -> Identity:
        raw_status = getattr(record, "status", None)
        return Identity(
            id=str(record.id),
            name=record.name,
            email=record.email,
            password_hash=record.password_hash,
            phone=record.phone,
            role=self.role,
            # An unknown stored value raises ValueError (malformed data → 500)
            status=Status(raw_status) if raw_status is not None else None,
            tenant_name=self.tenant_name,
        )


class ServiceProviderStore(SqlIdentityStore):
    model = ServiceProvider
    role = Role.SERVICE_PROVIDER


class CentralManagerStore(SqlIdentityStore):
    model = CentralManager
    role = Role.MANAGER


class ResidentStore(SqlIdentityStore):
    model = Resident
    role = Role.RESIDENT


class TenantManagerStore(SqlIdentityStore):
    model = Manager
    role = Role.MANAGER


# Search order inside one apartment
TENANT_STORES = (ResidentStore, TenantManagerStore)


class SqlTenantRegistry(TenantRegistry):
    """Apartment names from the central `apartments` table, oldest first."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[str]:
        result = await self.session.execute(
            select(Apartment.apartment_name).order_by(
                Apartment.created_at, Apartment.apartment_name
            )
        )
        return list(result.scalars().all())


def sql_tenant_scope(databases: DatabaseRegistry) -> TenantScope:
    """
    Build the per-tenant store factory used by IdentityResolver.

    The tenant session is opened when the resolver reaches that tenant and
    closed before it moves on to the next one.
    """

    @asynccontextmanager
    async def open_scope(tenant_name: str) -> AsyncGenerator[Sequence[IdentityStore], None]:
        async with databases.tenant_session(tenant_name) as session:
            logger.debug("Scanning tenant database: %s", tenant_name)
            yield [store(session, tenant_name) for store in TENANT_STORES]

    return open_scope
