"""
semantic_model_store.db.init_db

Create the document-store tables.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from semantic_model_store.db import models  # noqa: F401  (registers tables on Base.metadata)
from semantic_model_store.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Create tables if they don't exist.
    There is no migration workflow; changing the schema means recreating the store.
    """

    # Use a transactional DDL block when supported by the backend.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
