"""
semantic_model_store.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from a database URL.
- Create the async sessionmaker with safe defaults.
"""

from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool


def create_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # In-memory SQLite lives per connection; share one connection across sessions.
        return create_async_engine(url, poolclass=StaticPool)
    # pool_pre_ping helps detect stale connections in long-lived processes.
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


# --- Module Notes -----------------------------------------------------------
# Tests use `sqlite+aiosqlite://` (in-memory); the StaticPool branch keeps the tables
# created by `init_db` visible to every later session.
