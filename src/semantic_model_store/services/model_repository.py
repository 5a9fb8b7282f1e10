"""
semantic_model_store.services.model_repository

Repository facade over persistence strategies and the model cache.

Responsibilities:
- Validate paths before any I/O and resolve the requested strategy.
- Serialize operations per model path and bound total concurrency.
- Attach lazy loading / change tracking to loaded models on request.
- Use the cache as a best-effort read-through for loads.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from semantic_model_store.caching.base import SemanticModelCache
from semantic_model_store.errors import DisposedError, ModelValidationError
from semantic_model_store.models.change_tracking import ChangeTracker
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.observability.context import operation_context
from semantic_model_store.observability.logging import get_logger
from semantic_model_store.persistence.base import PersistenceStrategy
from semantic_model_store.persistence.factory import PersistenceStrategyFactory
from semantic_model_store.security.paths import validate_and_sanitize_path

log = get_logger(__name__)

DEFAULT_MAX_CONCURRENT_OPERATIONS = 10


def generate_cache_key(sanitized_path: str, strategy_name: str | None) -> str:
    """
    Deterministic key: readable last path segment + first 16 hex chars of
    SHA-256(`<path>|<strategy or "default">`).
    """

    source = f"{sanitized_path}|{strategy_name or 'default'}"
    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
    segment = os.path.basename(sanitized_path.rstrip("/\\")) or "unknown"
    return f"semantic_model_{segment}_{digest[:16]}"


class SemanticModelRepository:
    def __init__(
        self,
        *,
        strategy_factory: PersistenceStrategyFactory,
        cache: SemanticModelCache | None = None,
        max_concurrent_operations: int = DEFAULT_MAX_CONCURRENT_OPERATIONS,
    ) -> None:
        if max_concurrent_operations < 1:
            raise ModelValidationError(
                "max_concurrent_operations must be at least 1", param="max_concurrent_operations"
            )
        self._factory = strategy_factory
        self._cache = cache
        self._global = asyncio.Semaphore(max_concurrent_operations)
        # One lock per sanitized path. Entries are never evicted, so the map grows with
        # the number of distinct paths touched by this repository.
        self._path_locks: dict[str, asyncio.Lock] = {}
        self._disposed = False

    # --- Public operations -----------------------------------------------------

    async def save_model(
        self,
        model: SemanticModel,
        model_path: str,
        *,
        strategy_name: str | None = None,
    ) -> None:
        """Full save through the strategy. Never reads or writes the cache."""

        self._ensure_not_disposed()
        if model is None:
            raise ModelValidationError("Semantic model must not be None", param="model")
        path = _sanitize(model_path)
        strategy = self._factory.get_strategy(strategy_name)

        with operation_context(operation="save_model", path=path):
            async with self._protected(path):
                await strategy.save_model(model, path)
            log.info("repository_model_saved", model=model.name, strategy=strategy.name)

    async def save_changes(
        self,
        model: SemanticModel,
        model_path: str,
        *,
        strategy_name: str | None = None,
    ) -> None:
        """
        Save a change-tracked model. Selective per-entity persistence is not implemented:
        pending changes trigger a full save, after which the tracker is reset.
        """

        self._ensure_not_disposed()
        if model is None:
            raise ModelValidationError("Semantic model must not be None", param="model")

        if not model.has_unsaved_changes:
            log.debug("save_changes_full_save", model=model.name, tracked=model.is_change_tracking_enabled)
            await self.save_model(model, model_path, strategy_name=strategy_name)
            return

        tracker = model.change_tracker
        dirty = tracker.dirty_entity_count if tracker is not None else 0
        await self.save_model(model, model_path, strategy_name=strategy_name)
        model.accept_all_changes()
        log.info("repository_changes_saved", model=model.name, dirty_entities=dirty)

    async def load_model(
        self,
        model_path: str,
        *,
        enable_lazy_loading: bool = False,
        enable_change_tracking: bool = False,
        enable_caching: bool = False,
        strategy_name: str | None = None,
    ) -> SemanticModel:
        self._ensure_not_disposed()
        path = _sanitize(model_path)
        strategy = self._factory.get_strategy(strategy_name)
        use_cache = enable_caching and self._cache is not None

        with operation_context(operation="load_model", path=path):
            async with self._protected(path):
                cache_key = generate_cache_key(path, strategy_name) if use_cache else None

                if cache_key is not None:
                    cached = await self._cache_get(cache_key)
                    if cached is not None and not cached.is_disposed:
                        _attach(cached, path, strategy, enable_lazy_loading, enable_change_tracking)
                        log.info("repository_model_loaded", model=cached.name, source="cache")
                        return cached

                model = await strategy.load_model(path)
                _attach(model, path, strategy, enable_lazy_loading, enable_change_tracking)

                if cache_key is not None:
                    await self._cache_set(cache_key, model)

            log.info(
                "repository_model_loaded",
                model=model.name,
                source=strategy.name,
                lazy=enable_lazy_loading,
                tracked=enable_change_tracking,
            )
            return model

    async def exists(self, model_path: str, *, strategy_name: str | None = None) -> bool:
        self._ensure_not_disposed()
        path = _sanitize(model_path)
        strategy = self._factory.get_strategy(strategy_name)
        with operation_context(operation="exists", path=path):
            async with self._protected(path):
                return await strategy.exists(path)

    async def delete_model(self, model_path: str, *, strategy_name: str | None = None) -> None:
        """Delete the model and drop its cache entry. Missing models are a no-op."""

        self._ensure_not_disposed()
        path = _sanitize(model_path)
        strategy = self._factory.get_strategy(strategy_name)
        with operation_context(operation="delete_model", path=path):
            async with self._protected(path):
                await strategy.delete_model(path)
                if self._cache is not None:
                    await self._cache_remove(generate_cache_key(path, strategy_name))
            log.info("repository_model_deleted", strategy=strategy.name)

    async def list_models(self, root_path: str, *, strategy_name: str | None = None) -> list[str]:
        self._ensure_not_disposed()
        root = _sanitize(root_path)
        strategy = self._factory.get_strategy(strategy_name)
        with operation_context(operation="list_models", path=root):
            async with self._global:
                self._ensure_not_disposed()
                return await strategy.list_models(root)

    # --- Lifecycle -------------------------------------------------------------

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        log.debug("repository_disposed", tracked_paths=len(self._path_locks))

    async def aclose(self) -> None:
        """Dispose and close strategies and cache that hold resources."""

        if self._disposed:
            return
        self.dispose()
        await self._factory.aclose()
        if self._cache is not None:
            await self._cache.aclose()

    async def __aenter__(self) -> SemanticModelRepository:
        self._ensure_not_disposed()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # --- Internals -------------------------------------------------------------

    @asynccontextmanager
    async def _protected(self, path: str) -> AsyncIterator[None]:
        # Global admission first, then the path lock; exits release in reverse order.
        async with self._global:
            self._ensure_not_disposed()
            lock = self._path_locks.setdefault(path, asyncio.Lock())
            async with lock:
                self._ensure_not_disposed()
                yield

    async def _cache_get(self, key: str) -> SemanticModel | None:
        assert self._cache is not None
        try:
            return await self._cache.get(key)
        except Exception:
            log.warning("cache_read_failed", cache_key=key, exc_info=True)
            return None

    async def _cache_set(self, key: str, model: SemanticModel) -> None:
        assert self._cache is not None
        try:
            await self._cache.set(key, model)
        except Exception:
            log.warning("cache_write_failed", cache_key=key, exc_info=True)

    async def _cache_remove(self, key: str) -> None:
        assert self._cache is not None
        try:
            await self._cache.remove(key)
        except Exception:
            log.warning("cache_remove_failed", cache_key=key, exc_info=True)

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("SemanticModelRepository")


def _sanitize(model_path: str) -> str:
    try:
        return validate_and_sanitize_path(model_path)
    except ModelValidationError as exc:
        raise ModelValidationError(f"Invalid model path: {exc}", param="model_path") from exc


def _attach(
    model: SemanticModel,
    path: str,
    strategy: PersistenceStrategy,
    enable_lazy_loading: bool,
    enable_change_tracking: bool,
) -> None:
    if enable_lazy_loading and not model.is_lazy_loading_enabled:
        model.enable_lazy_loading(path, strategy)
    if enable_change_tracking and not model.is_change_tracking_enabled:
        model.enable_change_tracking(ChangeTracker())


# --- Module Notes -----------------------------------------------------------
# A cache hit may return a model instance shared with other callers; concurrent
# mutation of that instance is not isolated. Lazy collection loads triggered later
# run outside the per-path lock.
# Per-path locks are created on first use and kept for the repository's lifetime;
# the map grows with the number of distinct model paths touched.
