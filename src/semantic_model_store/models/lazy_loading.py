"""
semantic_model_store.models.lazy_loading

Single-flight deferred loader for one entity collection.

Responsibilities:
- Invoke the loader at most once, even under concurrent first access.
- Memoize the result until `reset()` or `dispose()`.
- Return to `unloaded` when a load fails so the next call retries.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from semantic_model_store.errors import DisposedError
from semantic_model_store.observability.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)


class LoadState(enum.StrEnum):
    unloaded = "unloaded"
    loading = "loading"
    loaded = "loaded"
    disposed = "disposed"


class LazyLoadingProxy(Generic[T]):
    def __init__(self, loader: Callable[[], Awaitable[list[T]]], *, name: str = "entities") -> None:
        self._loader: Callable[[], Awaitable[list[T]]] | None = loader
        self._name = name
        self._value: list[T] | None = None
        self._state = LoadState.unloaded
        self._lock = asyncio.Lock()

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is LoadState.loaded

    def peek(self) -> list[T] | None:
        """The memoized collection, or None when not loaded. Never triggers a load."""
        return self._value if self._state is LoadState.loaded else None

    async def get_entities(self) -> list[T]:
        """
        Return the memoized collection, loading it on first use.
        Callers arriving while a load is in flight wait for that load instead of starting another.
        """

        self._ensure_not_disposed()
        if self._state is LoadState.loaded and self._value is not None:
            return self._value

        async with self._lock:
            self._ensure_not_disposed()
            if self._state is LoadState.loaded and self._value is not None:
                return self._value

            loader = self._loader
            assert loader is not None
            self._state = LoadState.loading
            log.debug("lazy_load_started", collection=self._name)
            try:
                value = list(await loader())
            except BaseException:
                if self._state is LoadState.loading:
                    self._state = LoadState.unloaded
                raise

            # dispose() may have run while the loader was awaited.
            self._ensure_not_disposed()
            self._value = value
            self._state = LoadState.loaded
            log.debug("lazy_load_completed", collection=self._name, count=len(value))
            return value

    async def load(self) -> None:
        await self.get_entities()

    def reset(self) -> None:
        """Drop the memoized value; the next access reloads."""

        self._ensure_not_disposed()
        self._value = None
        self._state = LoadState.unloaded

    def dispose(self) -> None:
        if self._state is LoadState.disposed:
            return
        self._value = None
        self._loader = None
        self._state = LoadState.disposed

    def _ensure_not_disposed(self) -> None:
        if self._state is LoadState.disposed:
            raise DisposedError(f"LazyLoadingProxy[{self._name}]")


# --- Module Notes -----------------------------------------------------------
# The returned list is the memoized object itself; the owning SemanticModel mutates it
# in place when a lazily loaded entity is removed.
