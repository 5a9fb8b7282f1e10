"""
semantic_model_store.persistence

Persistence strategies: the backend-neutral contract plus local-disk and
document-store implementations.
"""

from semantic_model_store.persistence.base import PersistenceStrategy
from semantic_model_store.persistence.document_store import DocumentStorePersistenceStrategy
from semantic_model_store.persistence.factory import PersistenceStrategyFactory
from semantic_model_store.persistence.local_disk import LocalDiskPersistenceStrategy

__all__ = [
    "DocumentStorePersistenceStrategy",
    "LocalDiskPersistenceStrategy",
    "PersistenceStrategy",
    "PersistenceStrategyFactory",
]
