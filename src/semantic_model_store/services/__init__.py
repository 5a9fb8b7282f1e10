"""
semantic_model_store.services

Service layer: the repository facade and its composition root.
"""

from semantic_model_store.services.bootstrap import create_repository
from semantic_model_store.services.model_repository import (
    SemanticModelRepository,
    generate_cache_key,
)

__all__ = ["SemanticModelRepository", "create_repository", "generate_cache_key"]
