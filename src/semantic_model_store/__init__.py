"""
semantic_model_store

Persistence, concurrency, lazy-loading, change-tracking and caching layer for database
semantic models.

Responsibilities:
- Expose package version metadata.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"


# --- Module Notes -----------------------------------------------------------
# Keep this file minimal to avoid import-time side effects across the codebase.
