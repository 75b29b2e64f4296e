"""
ResiHub Backend — Identity Types and Store Interfaces
=======================================================

What:  The resolved-identity value object, the role/status enums, and the
       abstract capabilities the identity resolver depends on.
How:   `IdentityStore.find_one(email)` is implemented once per lookup scope
       (central service providers, tenant residents, tenant managers, central
       managers). `TenantRegistry.list_all()` enumerates apartments.
Who:   Implemented by identity_stores.py; consumed by IdentityResolver.

Keeping the resolver behind these interfaces lets tests drive it with
in-memory fakes and lets a future email→tenant index replace the scan
without touching the login flow.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional


class Role(str, enum.Enum):
    SERVICE_PROVIDER = "ServiceProvider"
    RESIDENT = "Resident"
    MANAGER = "Manager"

    @property
    def requires_approval(self) -> bool:
        """Residents and managers must be approved before they can log in."""
        return self in (Role.RESIDENT, Role.MANAGER)


class Status(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Identity:
    """
    A principal found by the identity resolver.

    Attributes:
        id:            Primary key in the store it was found in (string form)
        role:          Derived from the store's scope
        status:        None for service providers
        tenant_name:   Apartment the identity belongs to; None for central scopes
        password_hash: Needed for verification only; never serialized
    """

    id: str
    name: str
    email: str
    password_hash: str
    phone: Optional[str]
    role: Role
    status: Optional[Status] = None
    tenant_name: Optional[str] = None

    def with_tenant(self, tenant_name: str) -> "Identity":
        return replace(self, tenant_name=tenant_name)

    def public_view(self) -> Dict[str, Any]:
        """Projection returned to clients; never includes the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "apartmentComplexName": self.tenant_name,
            "role": self.role.value,
            "status": self.status.value if self.status else None,
            "phone": self.phone,
        }


class IdentityStore(ABC):
    """
    Capability: look up one identity by email within a single scope.

    Contract:
        - Returns None when the scope holds no identity with that email
        - Stamps role (and tenant, for tenant scopes) on the returned Identity
        - Lets connectivity errors propagate; the caller decides what they mean
    """

    @abstractmethod
    async def find_one(self, email: str) -> Optional[Identity]:
        ...


class TenantRegistry(ABC):
    """Capability: enumerate every known apartment, in registry order."""

    @abstractmethod
    async def list_all(self) -> List[str]:
        ...
