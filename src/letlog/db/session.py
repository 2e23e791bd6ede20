"""
letlog.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings.
- Create the async sessionmaker with safe defaults.
- Derive the sync URL Alembic migrates with.
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from letlog.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def sync_database_url(url: str) -> str:
    """
    Strip the async driver from an aiosqlite URL. Other URLs pass through
    unchanged; their sync driver must then be named explicitly.
    """

    parsed = make_url(url)
    if parsed.drivername == "sqlite+aiosqlite":
        return parsed.set(drivername="sqlite").render_as_string(hide_password=False)
    return url


# --- Module Notes -----------------------------------------------------------
# Request handlers get sessions via `api.deps.db_session`; the role lookup in the
# access middleware opens its own short session through `auth.profiles`.
