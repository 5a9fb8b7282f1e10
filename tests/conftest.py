"""
tests.conftest

Shared fixtures for the semantic model store test suite.

Responsibilities:
- Build small, realistic semantic models.
- Provide strategies, caches and repositories wired for isolated tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio

from semantic_model_store.caching.memory import MemorySemanticModelCache
from semantic_model_store.errors import ModelNotFoundError
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelColumn,
    SemanticModelEntity,
    SemanticModelIndex,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.persistence.base import PersistenceStrategy
from semantic_model_store.persistence.factory import PersistenceStrategyFactory
from semantic_model_store.persistence.local_disk import LocalDiskPersistenceStrategy
from semantic_model_store.services.model_repository import SemanticModelRepository


def make_table(schema: str = "dbo", name: str = "Customer") -> SemanticModelTable:
    table = SemanticModelTable(schema_name=schema, name=name, description=f"{name} records")
    table.add_column(
        SemanticModelColumn(
            schema_name=schema,
            name="Id",
            type="int",
            is_primary_key=True,
            is_identity=True,
        )
    )
    table.add_column(
        SemanticModelColumn(schema_name=schema, name="Email", type="nvarchar", max_length=256, is_nullable=True)
    )
    table.add_index(
        SemanticModelIndex(
            schema_name=schema,
            name=f"PK_{name}",
            type="CLUSTERED",
            column_name="Id",
            is_primary_key=True,
            is_unique=True,
        )
    )
    return table


def make_model(
    *,
    name: str = "Sales",
    tables: int = 1,
    views: int = 0,
    stored_procedures: int = 0,
) -> SemanticModel:
    model = SemanticModel(name, "Server=sql01;Database=Sales", "Sales database")
    for i in range(tables):
        model.add_table(make_table(name="Customer" if i == 0 else f"Table{i}"))
    for i in range(views):
        view = SemanticModelView(schema_name="dbo", name=f"View{i}", definition="SELECT 1 AS One")
        view.add_column(SemanticModelColumn(schema_name="dbo", name="One", type="int"))
        model.add_view(view)
    for i in range(stored_procedures):
        model.add_stored_procedure(
            SemanticModelStoredProcedure(
                schema_name="dbo",
                name=f"Proc{i}",
                parameters="@Id int",
                definition="SELECT * FROM dbo.Customer WHERE Id = @Id",
            )
        )
    return model


class FakeStrategy(PersistenceStrategy):
    """
    In-memory strategy with an artificial per-call delay.
    Records call counts and the peak number of overlapping saves per path.
    """

    name = "Fake"

    def __init__(self, *, delay: float = 0.0) -> None:
        self.delay = delay
        self.models: dict[str, SemanticModel] = {}
        self.calls: dict[str, int] = {
            "save_model": 0,
            "load_model": 0,
            "load_entities": 0,
            "exists": 0,
            "list_models": 0,
            "delete_model": 0,
        }
        self.active: dict[str, int] = {}
        self.max_active: dict[str, int] = {}
        self.closed = False

    async def save_model(self, model: SemanticModel, model_path: str) -> None:
        self.calls["save_model"] += 1
        self.active[model_path] = self.active.get(model_path, 0) + 1
        self.max_active[model_path] = max(self.max_active.get(model_path, 0), self.active[model_path])
        try:
            await asyncio.sleep(self.delay)
            self.models[model_path] = model
        finally:
            self.active[model_path] -= 1

    async def load_model(self, model_path: str) -> SemanticModel:
        self.calls["load_model"] += 1
        await asyncio.sleep(self.delay)
        stored = self.models.get(model_path)
        if stored is None:
            raise ModelNotFoundError("Semantic model not found", path=model_path)
        return SemanticModel(
            stored.name,
            stored.source,
            stored.description,
            tables=stored.materialized_entities(EntityKind.table),
            views=stored.materialized_entities(EntityKind.view),
            stored_procedures=stored.materialized_entities(EntityKind.stored_procedure),
        )

    async def load_entities(self, model_path: str, kind: EntityKind) -> list[SemanticModelEntity]:
        self.calls["load_entities"] += 1
        return await super().load_entities(model_path, kind)

    async def exists(self, model_path: str) -> bool:
        self.calls["exists"] += 1
        return model_path in self.models

    async def list_models(self, root_path: str) -> list[str]:
        self.calls["list_models"] += 1
        return sorted(self.models)

    async def delete_model(self, model_path: str) -> None:
        self.calls["delete_model"] += 1
        self.models.pop(model_path, None)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def model_factory() -> Callable[..., SemanticModel]:
    return make_model


@pytest.fixture
def local_strategy(tmp_path) -> LocalDiskPersistenceStrategy:
    staging = tmp_path / "staging"
    staging.mkdir()
    return LocalDiskPersistenceStrategy(temp_dir=str(staging))


@pytest.fixture
def fake_strategy() -> FakeStrategy:
    return FakeStrategy()


@pytest.fixture
def cache() -> MemorySemanticModelCache:
    return MemorySemanticModelCache(default_ttl_seconds=60)


@pytest_asyncio.fixture
async def repository(
    local_strategy: LocalDiskPersistenceStrategy,
    fake_strategy: FakeStrategy,
    cache: MemorySemanticModelCache,
) -> AsyncIterator[SemanticModelRepository]:
    factory = PersistenceStrategyFactory(default_strategy="LocalDisk")
    factory.register(local_strategy)
    factory.register(fake_strategy)
    repo = SemanticModelRepository(strategy_factory=factory, cache=cache, max_concurrent_operations=10)
    yield repo
    await repo.aclose()


@pytest.fixture
def fake_strategy_cls() -> type[FakeStrategy]:
    return FakeStrategy
