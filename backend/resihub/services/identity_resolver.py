"""
ResiHub Backend — Identity Resolver
=====================================

What:  Finds which principal an email belongs to across the central database
       and every apartment database.
How:   Fixed precedence, first match wins:
           1. central service providers
           2. for each apartment in registry order: residents, then managers
           3. central managers
Who:   Called by AuthService during login.

Cost:
    One query per scope and up to two per apartment, issued sequentially, so
    login latency grows with the number of apartments. A global email→tenant
    index maintained at signup would turn this into a single lookup.

Failure policy:
    Any database error aborts the whole resolution as DatabaseError. A tenant
    that cannot be reached is never skipped, because skipping could let the
    same email resolve to a different identity in a later tenant.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from resihub.exceptions import DatabaseError
from resihub.services.identity import Identity, IdentityStore, TenantRegistry
from resihub.services.identity_stores import TenantScope

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Resolves an email to an Identity.

    Args:
        service_providers: central service-provider store (searched first)
        registry:          tenant registry (consulted only if step 1 misses)
        tenant_scope:      opens a tenant and yields its stores in search order
        central_managers:  central manager store (searched last)
    """

    def __init__(
        self,
        service_providers: IdentityStore,
        registry: TenantRegistry,
        tenant_scope: TenantScope,
        central_managers: IdentityStore,
    ):
        self.service_providers = service_providers
        self.registry = registry
        self.tenant_scope = tenant_scope
        self.central_managers = central_managers

    async def resolve(self, email: str) -> Optional[Identity]:
        """
        Return the first identity matching `email`, or None.

        Raises:
            DatabaseError: any store or the registry failed to answer
        """
        tenant_name: Optional[str] = None
        try:
            identity = await self.service_providers.find_one(email)
            if identity is not None:
                return identity

            for tenant_name in await self.registry.list_all():
                async with self.tenant_scope(tenant_name) as stores:
                    for store in stores:
                        identity = await store.find_one(email)
                        if identity is not None:
                            logger.info(
                                "Resolved %s identity in tenant %s",
                                identity.role.value,
                                tenant_name,
                            )
                            return identity.with_tenant(tenant_name)
            tenant_name = None

            return await self.central_managers.find_one(email)

        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Identity lookup aborted (tenant=%s): %s",
                tenant_name or "central",
                str(e),
            )
            raise DatabaseError(
                message="Could not reach the account database",
                context={"tenant": tenant_name, "error_type": type(e).__name__},
            ) from e
