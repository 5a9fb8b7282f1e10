"""
semantic_model_store.services.bootstrap

Composition root for the repository stack.

Responsibilities:
- Configure structured logging from settings.
- Register the built-in persistence strategies.
- Build the memory cache when caching is enabled.
"""

from __future__ import annotations

from semantic_model_store.caching.memory import MemorySemanticModelCache
from semantic_model_store.observability.logging import configure_logging, get_logger
from semantic_model_store.persistence.document_store import DocumentStorePersistenceStrategy
from semantic_model_store.persistence.factory import PersistenceStrategyFactory
from semantic_model_store.persistence.local_disk import LocalDiskPersistenceStrategy
from semantic_model_store.services.model_repository import SemanticModelRepository
from semantic_model_store.settings import Settings, get_settings

log = get_logger(__name__)


def create_strategy_factory(settings: Settings) -> PersistenceStrategyFactory:
    factory = PersistenceStrategyFactory(default_strategy=settings.persistence_strategy)
    factory.register(LocalDiskPersistenceStrategy(temp_dir=settings.temp_dir))
    # The engine connects lazily, so registering the document store costs nothing until used.
    factory.register(
        DocumentStorePersistenceStrategy.from_url(
            settings.document_store_url,
            max_retry_attempts=settings.document_store_max_retry_attempts,
        )
    )
    # Fail at startup rather than on the first call when the default is misconfigured.
    factory.get_strategy(None)
    return factory


def create_cache(settings: Settings) -> MemorySemanticModelCache | None:
    if not settings.cache_enabled:
        return None
    return MemorySemanticModelCache(
        default_ttl_seconds=settings.cache_default_ttl_seconds,
        enable_statistics=settings.cache_enable_statistics,
        hit_rate_threshold=settings.cache_hit_rate_threshold,
        compaction_interval_seconds=settings.cache_compaction_interval_seconds,
    )


def create_repository(
    *,
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> SemanticModelRepository:
    settings = settings or get_settings()
    if configure_logs:
        # Configure structured logging once, before the first operation runs.
        configure_logging(service_name=settings.service_name, level=settings.log_level)

    repository = SemanticModelRepository(
        strategy_factory=create_strategy_factory(settings),
        cache=create_cache(settings),
        max_concurrent_operations=settings.max_concurrent_operations,
    )
    log.info(
        "repository_created",
        env=settings.env,
        default_strategy=settings.persistence_strategy,
        cache_enabled=settings.cache_enabled,
        max_concurrent_operations=settings.max_concurrent_operations,
    )
    return repository


# --- Module Notes -----------------------------------------------------------
# Callers own the returned repository: use `async with create_repository(...) as repo:`
# or call `await repo.aclose()` to dispose the document-store engine.
