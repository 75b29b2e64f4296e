"""
Alembic Migration Environment
===============================

What:  Runs migrations for the central database or for one apartment database.
How:   Async engine from our settings. The target is picked with `-x tenant`:

           alembic upgrade central@head
           alembic -x tenant="Oakwood Heights" upgrade tenant@head

       Without `-x tenant` the central URL and CentralBase metadata are used;
       with it, the templated tenant URL and TenantBase metadata. Each
       database keeps its own alembic_version table, so central and tenant
       branches never share a head.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config
from alembic import context

from resihub.config import settings
from resihub.database import CentralBase, DatabaseRegistry, TenantBase

# Register every table with its metadata for --autogenerate
from resihub.models import identity, service  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

tenant_name = context.get_x_argument(as_dictionary=True).get("tenant")

if tenant_name:
    target_metadata = TenantBase.metadata
    url = DatabaseRegistry(settings).tenant_url(tenant_name)
else:
    target_metadata = CentralBase.metadata
    url = settings.database_url

# Settings are the single source of the URLs (never alembic.ini)
config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
