"""
semantic_model_store.db.base

SQLAlchemy declarative base for the document-store backend.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# --- Module Notes -----------------------------------------------------------
# All document-store tables inherit from `Base` so `init_db` can create them in one call.
