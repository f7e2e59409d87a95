"""Alembic environment configuration.

Reads DATABASE_URL from app.core.config (same source as the running app)
and imports the SQLAlchemy metadata for autogenerate support.  Online
migrations run through the async engine (asyncpg), so no separate sync
driver is needed.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from app.core.config import SETTINGS
from app.db.engine import Base

config = context.config

# Override sqlalchemy.url from our app config (not the .ini placeholder).
if SETTINGS.database_url:
    config.set_main_option("sqlalchemy.url", SETTINGS.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Import table module so Base.metadata sees all table definitions.
import app.db.tables  # noqa: E402, F401

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (generate SQL without a live DB)."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode (connected to a live DB)."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_run_sync_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
