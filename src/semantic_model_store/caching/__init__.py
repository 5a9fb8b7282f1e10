"""
semantic_model_store.caching

Best-effort caching of loaded semantic models.
"""

from semantic_model_store.caching.base import CacheStatistics, SemanticModelCache
from semantic_model_store.caching.memory import MemorySemanticModelCache

__all__ = ["CacheStatistics", "MemorySemanticModelCache", "SemanticModelCache"]
