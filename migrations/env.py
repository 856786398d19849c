"""
Alembic Environment Configuration

Runs migrations for the SQLModel tables of the URL shortener:
- Database URL comes from application settings
- Models are imported so autogenerate sees every table
- SQLite migrates through the sync driver, other backends through the
  async engine the application itself uses
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from shortener.core.setting import settings
from shortener.db import models  # noqa: F401  (import all models so Alembic can detect them)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

ASYNC_DATABASE_URL = settings.DATABASE_URL


def to_sync_url(database_url: str) -> str:
    """
    Convert an async driver URL to its sync equivalent.

    sqlite+aiosqlite:///./app.db -> sqlite:///./app.db
    postgresql+asyncpg://...     -> postgresql+psycopg2://...
    """
    if database_url.startswith("sqlite+aiosqlite://"):
        return "sqlite://" + database_url[len("sqlite+aiosqlite://"):]
    if database_url.startswith("postgresql+asyncpg://"):
        return "postgresql+psycopg2://" + database_url[len("postgresql+asyncpg://"):]
    return database_url


SYNC_DATABASE_URL = to_sync_url(ASYNC_DATABASE_URL)
IS_SQLITE = SYNC_DATABASE_URL.startswith("sqlite")

config.set_main_option("sqlalchemy.url", SYNC_DATABASE_URL)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a DBAPI connection)."""
    context.configure(
        url=SYNC_DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=IS_SQLITE,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=IS_SQLITE,  # SQLite cannot ALTER most constraints in place
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(ASYNC_DATABASE_URL, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    if IS_SQLITE:
        connectable = create_engine(SYNC_DATABASE_URL, poolclass=pool.NullPool)
        with connectable.connect() as connection:
            do_run_migrations(connection)
        connectable.dispose()
    else:
        asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
