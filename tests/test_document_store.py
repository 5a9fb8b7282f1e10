"""
tests.test_document_store

Document-store strategy on in-memory SQLite.

Responsibilities:
- Same persistence contract as the local-disk strategy.
- Partition keys derived from the sanitized last path segment.
- Retry on transient OperationalError, wrapped error once retries are exhausted.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from semantic_model_store.errors import (
    ModelNotFoundError,
    ModelValidationError,
    PersistenceOperationError,
)
from semantic_model_store.models.entities import EntityKind, SemanticModelTable
from semantic_model_store.persistence.document_store import (
    DocumentStorePersistenceStrategy,
    partition_key_for,
)


@pytest_asyncio.fixture
async def store() -> AsyncIterator[DocumentStorePersistenceStrategy]:
    strategy = DocumentStorePersistenceStrategy.from_url(
        "sqlite+aiosqlite://",
        max_retry_attempts=3,
        retry_min_wait_seconds=0.01,
        retry_max_wait_seconds=0.02,
    )
    yield strategy
    await strategy.aclose()


def test_partition_key_is_sanitized_last_segment() -> None:
    assert partition_key_for("/models/sales") == "sales"
    assert partition_key_for("/models/Sales 2024/") == "Sales 2024"
    with pytest.raises(ModelValidationError):
        partition_key_for("/models/../sales")


@pytest.mark.asyncio
async def test_round_trip(store, model_factory) -> None:
    original = model_factory(tables=2, views=1, stored_procedures=1)
    await store.save_model(original, "/models/sales")

    loaded = await store.load_model("/models/sales")
    assert (loaded.name, loaded.source, loaded.description) == (
        original.name,
        original.source,
        original.description,
    )
    for kind in EntityKind:
        assert [e.key for e in loaded.materialized_entities(kind)] == [
            e.key for e in original.materialized_entities(kind)
        ]
    assert loaded.tables[0].columns[1].max_length == 256


@pytest.mark.asyncio
async def test_resave_replaces_entities(store, model_factory) -> None:
    model = model_factory(tables=2)
    await store.save_model(model, "/models/sales")
    model.remove_table(model.tables[1])
    model.add_table(SemanticModelTable(schema_name="dbo", name="Orders"))
    await store.save_model(model, "/models/sales")

    loaded = await store.load_model("/models/sales")
    assert [t.name for t in loaded.tables] == ["Customer", "Orders"]


@pytest.mark.asyncio
async def test_load_missing_raises_not_found(store) -> None:
    with pytest.raises(ModelNotFoundError):
        await store.load_model("/models/unknown")
    with pytest.raises(ModelNotFoundError):
        await store.load_entities("/models/unknown", EntityKind.table)


@pytest.mark.asyncio
async def test_load_entities_exists_list_delete(store, model_factory) -> None:
    await store.save_model(model_factory(name="Sales", views=2), "/a/sales")
    await store.save_model(model_factory(name="Hr"), "/b/hr")

    views = await store.load_entities("/a/sales", EntityKind.view)
    assert [v.name for v in views] == ["View0", "View1"]

    assert await store.exists("/a/sales")
    assert await store.list_models("/ignored") == ["Hr", "Sales"]

    await store.delete_model("/a/sales")
    await store.delete_model("/a/sales")
    assert not await store.exists("/a/sales")
    assert await store.list_models("/ignored") == ["Hr"]


@pytest.mark.asyncio
async def test_transient_errors_are_retried(store, model_factory, monkeypatch) -> None:
    attempts = 0
    original_get = store._sessionmaker

    def flaky_sessionmaker():
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return original_get()

    monkeypatch.setattr(store, "_sessionmaker", flaky_sessionmaker)
    await store.save_model(model_factory(), "/models/sales")

    assert attempts == 3
    monkeypatch.setattr(store, "_sessionmaker", original_get)
    assert await store.exists("/models/sales")


@pytest.mark.asyncio
async def test_exhausted_retries_raise_operation_error(store, model_factory, monkeypatch) -> None:
    def always_locked():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    await store.exists("/models/warmup")
    monkeypatch.setattr(store, "_sessionmaker", always_locked)

    with pytest.raises(PersistenceOperationError) as exc:
        await store.save_model(model_factory(), "/models/sales")
    assert exc.value.model_name == "Sales"
    assert exc.value.elapsed_ms is not None
    assert isinstance(exc.value.__cause__, OperationalError)


@pytest.mark.asyncio
async def test_unsafe_model_rejected_before_any_write(store, model_factory, monkeypatch) -> None:
    def no_session():
        raise AssertionError("session opened for an invalid model")

    monkeypatch.setattr(store, "_sessionmaker", no_session)

    scripted = model_factory()
    scripted.description = "<script>alert(1)</script>"
    with pytest.raises(ModelValidationError, match="dangerous content"):
        await store.save_model(scripted, "/models/sales")

    injected = model_factory()
    injected.add_table(SemanticModelTable(schema_name="${env}", name="Orders"))
    with pytest.raises(ModelValidationError, match="dangerous content"):
        await store.save_model(injected, "/models/sales")

    executable = model_factory()
    executable.add_table(SemanticModelTable(schema_name="dbo", name="Run.exe"))
    with pytest.raises(ModelValidationError, match="dangerous file extension"):
        await store.save_model(executable, "/models/sales")
