"""
semantic_model_store.caching.base

Cache contract for loaded semantic models.

Responsibilities:
- Define the six cache operations consumed by the repository.
- Define the statistics snapshot returned by `get_statistics`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from semantic_model_store.models.semantic_model import SemanticModel


@dataclass(frozen=True, slots=True)
class CacheStatistics:
    total_requests: int = 0
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    size: int = 0
    # Informational only; implementations are not required to enforce a limit.
    memory_estimate: int = 0


class SemanticModelCache(ABC):
    """
    Implementations must be safe under concurrent access from many tasks.
    A hit may hand the same model instance to several callers.
    """

    @abstractmethod
    async def get(self, key: str) -> SemanticModel | None: ...

    @abstractmethod
    async def set(self, key: str, model: SemanticModel, ttl_seconds: float | None = None) -> None: ...

    @abstractmethod
    async def remove(self, key: str) -> bool: ...

    @abstractmethod
    async def clear(self) -> None: ...

    @abstractmethod
    async def exists(self, key: str) -> bool: ...

    @abstractmethod
    async def get_statistics(self) -> CacheStatistics: ...

    async def aclose(self) -> None:
        """Release resources. Default: nothing to release."""
