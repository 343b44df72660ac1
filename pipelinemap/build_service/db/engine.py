"""Engine and session factory for the pipeline environment map database.

Everything runs on psycopg3 (``postgresql+psycopg://``): the app through the
async engine below, Alembic through a sync engine on the same URL.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

PSYCOPG_SCHEME = "postgresql+psycopg://"

# Schemes found in F8_DATABASE_URL values written for other drivers.
_FOREIGN_SCHEMES = ("postgresql+asyncpg://", "postgresql://", "postgres://")

# One build service instance serves short CRUD transactions only.
POOL_DEFAULTS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_pre_ping": True,  # survive PG restarts and idle disconnects
    "pool_recycle": 3600,
}


def normalize_url(database_url: str) -> str:
    """Rewrite bare ``postgresql://`` and asyncpg URLs to the psycopg3 dialect."""
    for scheme in _FOREIGN_SCHEMES:
        if database_url.startswith(scheme):
            return PSYCOPG_SCHEME + database_url.removeprefix(scheme)
    return database_url


def create_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """Async engine on *database_url* with ``POOL_DEFAULTS``; *overrides* win."""
    return create_async_engine(normalize_url(database_url), **{**POOL_DEFAULTS, **overrides})


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by the transaction coordinator.

    Rows returned by the workflow are serialised after commit, so instances
    must not expire (no implicit IO in async code).
    """
    return async_sessionmaker(engine, expire_on_commit=False)
