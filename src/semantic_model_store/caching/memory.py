"""
semantic_model_store.caching.memory

In-process TTL cache for semantic models.

Responsibilities:
- Store models with an absolute expiry; expired entries read as misses.
- Count requests / hits / misses when statistics are enabled.
- Compact expired entries periodically on writes.
- Estimate per-entry size from the model's materialized collections.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass

from semantic_model_store.caching.base import CacheStatistics, SemanticModelCache
from semantic_model_store.errors import DisposedError, ModelValidationError
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.models.visitor import SemanticModelVisitor, visit_node
from semantic_model_store.observability.logging import get_logger

log = get_logger(__name__)

BASE_ENTRY_SIZE = 1024
TABLE_SIZE = 512
VIEW_SIZE = 256
STORED_PROCEDURE_SIZE = 256
HIT_RATE_MIN_REQUESTS = 10


@dataclass(slots=True)
class _Entry:
    model: SemanticModel
    expires_at: float
    size: int


class _SizeEstimator(SemanticModelVisitor):
    def __init__(self) -> None:
        self.size = BASE_ENTRY_SIZE

    def visit_table(self, table: SemanticModelTable) -> None:
        self.size += TABLE_SIZE

    def visit_view(self, view: SemanticModelView) -> None:
        self.size += VIEW_SIZE

    def visit_stored_procedure(self, stored_procedure: SemanticModelStoredProcedure) -> None:
        self.size += STORED_PROCEDURE_SIZE


def estimate_model_size(model: SemanticModel) -> int:
    """Rough byte estimate. Never triggers lazy loads: unloaded collections count as empty."""

    estimator = _SizeEstimator()
    for kind in EntityKind:
        for entity in model.materialized_entities(kind):
            visit_node(estimator, entity)
    return estimator.size


class MemorySemanticModelCache(SemanticModelCache):
    def __init__(
        self,
        *,
        default_ttl_seconds: float = 1800,
        enable_statistics: bool = True,
        hit_rate_threshold: float = 0.7,
        compaction_interval_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl_seconds <= 0:
            raise ModelValidationError("default_ttl_seconds must be positive", param="default_ttl_seconds")
        self._default_ttl = default_ttl_seconds
        self._enable_statistics = enable_statistics
        self._hit_rate_threshold = hit_rate_threshold
        self._compaction_interval = compaction_interval_seconds
        self._clock = clock

        self._entries: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._last_compaction = clock()
        self._total_requests = 0
        self._hits = 0
        self._misses = 0
        self._disposed = False

    async def get(self, key: str) -> SemanticModel | None:
        self._check(key)
        async with self._lock:
            if self._enable_statistics:
                self._total_requests += 1
            entry = self._live_entry(key)
            if entry is None:
                if self._enable_statistics:
                    self._misses += 1
                log.debug("cache_miss", cache_key=key)
                return None
            if self._enable_statistics:
                self._hits += 1
            log.debug("cache_hit", cache_key=key)
            return entry.model

    async def set(self, key: str, model: SemanticModel, ttl_seconds: float | None = None) -> None:
        self._check(key)
        if model is None:
            raise ModelValidationError("Cached model must not be None", param="model")
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        if ttl <= 0:
            raise ModelValidationError("ttl_seconds must be positive", param="ttl_seconds")
        async with self._lock:
            self._maybe_compact()
            self._entries[key] = _Entry(
                model=model,
                expires_at=self._clock() + ttl,
                size=estimate_model_size(model),
            )
        log.debug("cache_set", cache_key=key, ttl_seconds=ttl)

    async def remove(self, key: str) -> bool:
        self._check(key)
        async with self._lock:
            existed = self._live_entry(key) is not None
            self._entries.pop(key, None)
        log.debug("cache_remove", cache_key=key, existed=existed)
        return existed

    async def clear(self) -> None:
        self._ensure_not_disposed()
        async with self._lock:
            self._entries.clear()
            self._total_requests = self._hits = self._misses = 0
        log.info("cache_cleared")

    async def exists(self, key: str) -> bool:
        self._check(key)
        async with self._lock:
            return self._live_entry(key) is not None

    async def get_statistics(self) -> CacheStatistics:
        self._ensure_not_disposed()
        async with self._lock:
            now = self._clock()
            live = [e for e in self._entries.values() if e.expires_at > now]
            total = self._total_requests
            hit_rate = self._hits / total if total > 0 else 0.0
            stats = CacheStatistics(
                total_requests=total,
                hits=self._hits,
                misses=self._misses,
                hit_rate=hit_rate,
                size=len(live),
                memory_estimate=sum(e.size for e in live),
            )

        if self._enable_statistics and total > HIT_RATE_MIN_REQUESTS and hit_rate < self._hit_rate_threshold:
            log.warning(
                "cache_hit_rate_below_threshold",
                hit_rate=round(hit_rate, 4),
                threshold=self._hit_rate_threshold,
                total_requests=total,
            )
        return stats

    async def aclose(self) -> None:
        self.dispose()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._entries.clear()
        self._disposed = True
        log.debug("cache_disposed")

    # --- Internals (call with the lock held) ---------------------------------

    def _live_entry(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _maybe_compact(self) -> None:
        if self._compaction_interval <= 0:
            return
        now = self._clock()
        if now - self._last_compaction < self._compaction_interval:
            return
        self._last_compaction = now
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("cache_compacted", removed=len(expired))

    def _check(self, key: str) -> None:
        self._ensure_not_disposed()
        if not key or not key.strip():
            raise ModelValidationError("Cache key must not be empty", param="cache_key")

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("MemorySemanticModelCache")


# --- Module Notes -----------------------------------------------------------
# No size limit is enforced; `memory_estimate` is informational. Entries hold live
# model instances, so callers sharing a hit also share its mutations.
