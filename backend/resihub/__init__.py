"""
ResiHub Backend — Application Package
=======================================

Multi-tenant apartment-management API: residents, managers and service
providers log in against one central database plus one database per
apartment complex, and service providers publish service listings.

Layers:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← login flow, catalog, storage
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │     DatabaseRegistry (Persistence)  │  ← central + per-tenant engines
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
