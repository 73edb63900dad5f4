"""
Alembic environment for the phenotype catalog schema.

The PostgreSQL database is shared with the web application, which
migrates its own tables; autogenerate only compares the tables declared
in ``phenotype_platform.db.models`` (see ``include_in_autogenerate``).

The target URL comes from ``DATABASE_URL`` via settings; pass
``-x url=postgresql://...`` to migrate a different database.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from phenotype_platform.db.models import Base, include_in_autogenerate
from phenotype_platform.db.postgres import to_async_url
from phenotype_platform.settings import get_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("url")
    return to_async_url(override or get_settings().database_url)


def _configure(**kwargs) -> None:  # noqa: ANN003
    context.configure(
        target_metadata=target_metadata,
        include_object=include_in_autogenerate,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection) -> None:  # noqa: ANN001
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    # One-shot process: no pool to keep warm
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_on_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
