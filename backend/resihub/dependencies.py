"""
ResiHub Backend — Route Dependencies
======================================

What:  FastAPI dependencies shared by the route handlers: the current user
       of a protected request and the per-request AuthService.
How:   The session token is read from `Authorization: Bearer <token>` or the
       `x-auth-token` header and verified by TokenIssuer. AuthService is
       assembled from the request's central session and the app-owned
       DatabaseRegistry.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from resihub.database import DatabaseRegistry, get_databases, get_db_session
from resihub.exceptions import AuthenticationError
from resihub.services.auth_service import AuthService
from resihub.services.identity_resolver import IdentityResolver
from resihub.services.identity_stores import (
    CentralManagerStore,
    ServiceProviderStore,
    SqlTenantRegistry,
    sql_tenant_scope,
)
from resihub.services.service_catalog import ServiceCatalog, service_catalog
from resihub.services.tokens import TokenPayload, token_issuer


def extract_token(authorization: Optional[str], x_auth_token: Optional[str]) -> Optional[str]:
    """Bearer header first, then x-auth-token."""
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    if x_auth_token and x_auth_token.strip():
        return x_auth_token.strip()
    return None


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    x_auth_token: Optional[str] = Header(default=None),
) -> TokenPayload:
    """
    Verified payload of the caller's session token.

    Raises:
        AuthenticationError: "No token provided" or "Invalid token" (401)
    """
    token = extract_token(authorization, x_auth_token)
    if token is None:
        raise AuthenticationError(message="No token provided")
    payload = token_issuer.verify(token)
    if payload is None:
        raise AuthenticationError(message="Invalid token")
    return payload


def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    databases: DatabaseRegistry = Depends(get_databases),
) -> AuthService:
    resolver = IdentityResolver(
        service_providers=ServiceProviderStore(db),
        registry=SqlTenantRegistry(db),
        tenant_scope=sql_tenant_scope(databases),
        central_managers=CentralManagerStore(db),
    )
    return AuthService(resolver=resolver, tokens=token_issuer)


def get_service_catalog() -> ServiceCatalog:
    return service_catalog
