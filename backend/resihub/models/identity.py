"""
ResiHub Backend — Identity and Tenant Registry Models
=======================================================

What:  ORM models for every principal that can log in, plus the apartment
       registry that lists tenant databases.
How:   A shared `IdentityColumns` mixin defines the login columns; concrete
       classes bind it to the central or tenant declarative base.

Where each table lives:
    central database:  service_providers, central_managers, apartments
    tenant databases:  residents, managers (one copy per apartment)

Emails are unique per table, never across tables. The role of a row is
implied by the table it is found in; it is not stored.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, validates

from resihub.database import CentralBase, TenantBase, tenant_database_name


class IdentityColumns:
    """Columns shared by all identity tables."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    # bcrypt hash, never returned by the API
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, email={self.email!r})>"


class ApprovalColumns:
    """Registration status for identities that need a manager's approval."""

    # pending → approved | rejected
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=text("'pending'"),
        default="pending",
    )


# ── Central database ──────────────────────────────────────────────────────

class ServiceProvider(IdentityColumns, CentralBase):
    __tablename__ = "service_providers"


class CentralManager(IdentityColumns, ApprovalColumns, CentralBase):
    __tablename__ = "central_managers"


class Apartment(CentralBase):
    """
    One registered apartment complex.

    `database_name` is derived from `apartment_name` when the name is set
    (see database.tenant_database_name) and is unique, so two names that
    slug alike ("Oak Wood", "oak-wood") cannot share a tenant database. The
    registry is scanned in creation order during login.
    """

    __tablename__ = "apartments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    apartment_name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    database_name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    @validates("apartment_name")
    def _derive_database_name(self, key: str, value: str) -> str:
        self.database_name = tenant_database_name(value)
        return value

    def __repr__(self) -> str:
        return f"<Apartment(apartment_name={self.apartment_name!r})>"


# ── Tenant databases ──────────────────────────────────────────────────────

class Resident(IdentityColumns, ApprovalColumns, TenantBase):
    __tablename__ = "residents"

    unit_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)


class Manager(IdentityColumns, ApprovalColumns, TenantBase):
    __tablename__ = "managers"
