"""
Alembic environment for the kv_entries schema.

The database URL is read from the proxy's own Settings (DATABASE_URL),
so alembic.ini carries no credentials. Migrations run on the async
driver the proxy itself uses: asyncpg in production, aiosqlite locally.

    cd backend && alembic upgrade head
    cd backend && alembic upgrade head --sql    # emit SQL only
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from release_proxy.core.config import Settings
from release_proxy.core.database import Base
from release_proxy.models.kv_entry import KVEntry  # noqa: F401  registers the table

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    url = Settings().DATABASE_URL  # type: ignore[call-arg]
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not configured; the proxy runs without a store, "
            "so there is nothing to migrate."
        )
    return url


def _configure(**options) -> None:  # type: ignore[no-untyped-def]
    context.configure(target_metadata=Base.metadata, compare_type=True, **options)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection) -> None:
    _configure(connection=connection)


async def _migrate(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate_connection)
    finally:
        await engine.dispose()


url = _database_url()

if context.is_offline_mode():
    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_migrate(url))
