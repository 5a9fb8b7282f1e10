"""
semantic_model_store.persistence.base

Persistence strategy contract.

Responsibilities:
- Define the five operations every backend implements (save, load, exists, list, delete).
- Provide the lazy-loading hook `load_entities` with a whole-model fallback.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from semantic_model_store.models.entities import EntityKind, SemanticModelEntity
from semantic_model_store.models.semantic_model import SemanticModel


class PersistenceStrategy(ABC):
    """
    Backends must make `save_model` atomic from the caller's point of view: a failure
    never leaves previously working data at `model_path` unreadable.
    """

    #: Registry name used by `PersistenceStrategyFactory`.
    name: str = ""

    @abstractmethod
    async def save_model(self, model: SemanticModel, model_path: str) -> None: ...

    @abstractmethod
    async def load_model(self, model_path: str) -> SemanticModel:
        """Raise `ModelNotFoundError` when nothing is stored at `model_path`."""

    @abstractmethod
    async def exists(self, model_path: str) -> bool: ...

    @abstractmethod
    async def list_models(self, root_path: str) -> list[str]: ...

    @abstractmethod
    async def delete_model(self, model_path: str) -> None:
        """No-op when nothing exists; raise when the target is not a recognizable model."""

    async def load_entities(self, model_path: str, kind: EntityKind) -> list[SemanticModelEntity]:
        # Fallback: load everything and keep one collection.
        model = await self.load_model(model_path)
        try:
            return await model.get_entities(kind)
        finally:
            model.dispose()

    async def aclose(self) -> None:
        """Release backend resources (engines, clients). Default: nothing to release."""


# --- Module Notes -----------------------------------------------------------
# Path arguments are validated by each strategy as well as by the repository; a
# strategy may be used directly without the repository in front of it.
