"""
Database Session Management

This module builds async engines and session factories using SQLAlchemy's
async engine, through the database adapter layer.

Engines are built per application (see shortener.core.context) rather than
at import time, so tests can point each app at its own database.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortener.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from shortener.db.sqlite_adapter import get_database_adapter


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for a database URL via the configured adapter."""
    return get_database_adapter().create_engine(database_url)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create the async session factory for an engine.

    expire_on_commit=False keeps records readable after commit, which the
    services rely on when returning them to the API layer.
    """
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables (development and tests; Alembic in production)."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def check_connection(engine: AsyncEngine) -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False

