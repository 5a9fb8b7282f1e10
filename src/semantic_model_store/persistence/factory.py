"""
semantic_model_store.persistence.factory

Name -> strategy registry.

Responsibilities:
- Resolve strategies by case-insensitive name, falling back to the configured default.
- Close every registered strategy when the owning repository shuts down.
"""

from __future__ import annotations

from semantic_model_store.errors import ModelValidationError
from semantic_model_store.persistence.base import PersistenceStrategy


class PersistenceStrategyFactory:
    def __init__(self, *, default_strategy: str = "LocalDisk") -> None:
        self._strategies: dict[str, PersistenceStrategy] = {}
        self._names: dict[str, str] = {}
        self._default = default_strategy

    @property
    def default_strategy_name(self) -> str:
        return self._default

    @property
    def registered_names(self) -> list[str]:
        return sorted(self._names.values())

    def register(self, strategy: PersistenceStrategy, name: str | None = None) -> None:
        name = name or strategy.name
        if not name or not name.strip():
            raise ModelValidationError("Strategy name must not be empty", param="strategy_name")
        self._strategies[name.lower()] = strategy
        self._names[name.lower()] = name

    def get_strategy(self, strategy_name: str | None = None) -> PersistenceStrategy:
        name = strategy_name if strategy_name and strategy_name.strip() else self._default
        strategy = self._strategies.get(name.lower())
        if strategy is None:
            raise ModelValidationError(
                f"Unknown persistence strategy '{name}'. Registered: {', '.join(self.registered_names)}",
                param="strategy_name",
            )
        return strategy

    async def aclose(self) -> None:
        # A strategy registered under two names is closed once.
        seen: set[int] = set()
        for strategy in self._strategies.values():
            if id(strategy) in seen:
                continue
            seen.add(id(strategy))
            await strategy.aclose()
