"""
semantic_model_store.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for repository, cache and strategies.
- Offer a cached settings instance for the composition root.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    - Strict env-driven configuration (prefix `SMSTORE_`)
    - Defaults safe for local dev
    - Single settings object injected into `services.bootstrap.create_repository`
    """

    model_config = SettingsConfigDict(env_prefix="SMSTORE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "semantic-model-store"
    log_level: str = "INFO"

    # Persistence
    persistence_strategy: str = "LocalDisk"
    max_concurrent_operations: int = Field(default=10, ge=1)
    # Staging root for atomic local-disk saves; system temp dir when unset.
    temp_dir: str | None = None

    # Cache
    cache_enabled: bool = True
    cache_default_ttl_seconds: float = Field(default=1800, gt=0)
    cache_enable_statistics: bool = True
    cache_hit_rate_threshold: float = Field(default=0.7, ge=0, le=1)
    cache_compaction_interval_seconds: float = Field(default=300, ge=0)

    # Document store
    document_store_url: str = "sqlite+aiosqlite:///./semantic_models.db"
    document_store_max_retry_attempts: int = Field(default=3, ge=1, le=10)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for every caller.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every tunable of the repository stack lives here so tests can build a `Settings(...)`
# explicitly instead of patching environment variables.
