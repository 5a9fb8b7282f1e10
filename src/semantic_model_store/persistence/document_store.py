"""
semantic_model_store.persistence.document_store

Document-database persistence strategy on SQLAlchemy async.

Responsibilities:
- Store one root row per model (partition key = sanitized last path segment) and one
  row per entity holding its full JSON body.
- Replace a model's documents in a single transaction, retried on transient errors.
- Wrap backend failures into `PersistenceOperationError` with model name and elapsed time.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from semantic_model_store.db.init_db import init_db
from semantic_model_store.db.models import EntityDocument, ModelDocument
from semantic_model_store.db.session import create_engine, create_sessionmaker
from semantic_model_store.errors import (
    ModelNotFoundError,
    ModelValidationError,
    PersistenceOperationError,
    SemanticModelStoreError,
)
from semantic_model_store.models.documents import build_root_document, dump_document
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelEntity,
    entity_from_document,
    entity_to_document,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.observability.logging import get_logger
from semantic_model_store.persistence.base import PersistenceStrategy
from semantic_model_store.persistence.validation import validate_model_for_save
from semantic_model_store.security.names import sanitize_entity_name
from semantic_model_store.security.paths import validate_and_sanitize_path

log = get_logger(__name__)

T = TypeVar("T")


class DocumentStorePersistenceStrategy(PersistenceStrategy):
    name = "DocumentStore"

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        max_retry_attempts: int = 3,
        retry_min_wait_seconds: float = 0.1,
        retry_max_wait_seconds: float = 2.0,
        owns_engine: bool = False,
    ) -> None:
        self._engine = engine
        self._sessionmaker: async_sessionmaker[AsyncSession] = create_sessionmaker(engine)
        self._max_retry_attempts = max_retry_attempts
        self._retry_min_wait = retry_min_wait_seconds
        self._retry_max_wait = retry_max_wait_seconds
        self._owns_engine = owns_engine
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> DocumentStorePersistenceStrategy:
        return cls(engine=create_engine(database_url), owns_engine=True, **kwargs)

    async def save_model(self, model: SemanticModel, model_path: str) -> None:
        if model is None:
            raise ModelValidationError("Semantic model must not be None", param="model")
        key = partition_key_for(model_path)
        entities = await validate_model_for_save(model, model_path)
        root = dump_document(
            build_root_document(
                name=model.name,
                source=model.source,
                description=model.description,
                entities=entities,
            )
        )

        async def write(session: AsyncSession) -> None:
            await session.execute(delete(EntityDocument).where(EntityDocument.partition_key == key))
            row = await session.get(ModelDocument, key)
            if row is None:
                session.add(
                    ModelDocument(partition_key=key, name=model.name, source=model.source, document=root)
                )
            else:
                row.name = model.name
                row.source = model.source
                row.document = root
            session.add_all(
                EntityDocument(
                    partition_key=key,
                    kind=kind.value,
                    schema_name=entity.schema_name,
                    name=entity.name,
                    position=position,
                    body=entity_to_document(entity),
                )
                for kind in EntityKind
                for position, entity in enumerate(entities[kind])
            )

        _, elapsed_ms = await self._run("save_model", write, model_name=model.name, write=True)
        log.info("model_saved", model=model.name, partition_key=key, elapsed_ms=elapsed_ms)

    async def load_model(self, model_path: str) -> SemanticModel:
        key = partition_key_for(model_path)

        async def read(session: AsyncSession) -> SemanticModel:
            row = await session.get(ModelDocument, key)
            if row is None:
                raise ModelNotFoundError("Semantic model not found", path=model_path)
            model = SemanticModel(row.name, row.source, row.document.get("Description"))
            for kind, entity in await _select_entities(session, key):
                match kind:
                    case EntityKind.table:
                        model.add_table(entity)
                    case EntityKind.view:
                        model.add_view(entity)
                    case EntityKind.stored_procedure:
                        model.add_stored_procedure(entity)
            return model

        model, elapsed_ms = await self._run("load_model", read, model_name=key)
        log.info("model_loaded", model=model.name, partition_key=key, elapsed_ms=elapsed_ms)
        return model

    async def load_entities(self, model_path: str, kind: EntityKind) -> list[SemanticModelEntity]:
        key = partition_key_for(model_path)

        async def read(session: AsyncSession) -> list[SemanticModelEntity]:
            if await session.get(ModelDocument, key) is None:
                raise ModelNotFoundError("Semantic model not found", path=model_path)
            return [entity for _, entity in await _select_entities(session, key, kind)]

        entities, _ = await self._run("load_entities", read, model_name=key)
        return entities

    async def exists(self, model_path: str) -> bool:
        key = partition_key_for(model_path)

        async def read(session: AsyncSession) -> bool:
            stmt = select(ModelDocument.partition_key).where(ModelDocument.partition_key == key)
            return (await session.execute(stmt)).scalar_one_or_none() is not None

        found, _ = await self._run("exists", read, model_name=key)
        return found

    async def list_models(self, root_path: str) -> list[str]:
        # The store is flat: every model is listed regardless of root_path.
        async def read(session: AsyncSession) -> list[str]:
            stmt = select(ModelDocument.name).order_by(ModelDocument.name)
            return list((await session.execute(stmt)).scalars().all())

        names, _ = await self._run("list_models", read)
        return names

    async def delete_model(self, model_path: str) -> None:
        key = partition_key_for(model_path)

        async def write(session: AsyncSession) -> bool:
            row = await session.get(ModelDocument, key)
            if row is None:
                return False
            await session.execute(delete(EntityDocument).where(EntityDocument.partition_key == key))
            await session.execute(delete(ModelDocument).where(ModelDocument.partition_key == key))
            return True

        deleted, _ = await self._run("delete_model", write, model_name=key, write=True)
        if deleted:
            log.info("model_deleted", partition_key=key)
        else:
            log.warning("model_delete_missing", partition_key=key)

    async def aclose(self) -> None:
        if self._owns_engine:
            await self._engine.dispose()

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if not self._schema_ready:
                await init_db(self._engine)
                self._schema_ready = True

    async def _run(
        self,
        operation: str,
        work: Callable[[AsyncSession], Awaitable[T]],
        *,
        model_name: str | None = None,
        write: bool = False,
    ) -> tuple[T, float]:
        """
        Run `work(session)` in one session, retrying transient `OperationalError`s.
        Write operations run inside a transaction. Returns the result and elapsed ms.
        """

        started = time.perf_counter()
        try:
            await self._ensure_schema()
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retry_attempts),
                wait=wait_exponential(
                    multiplier=self._retry_min_wait,
                    min=self._retry_min_wait,
                    max=self._retry_max_wait,
                ),
                retry=retry_if_exception_type(OperationalError),
                before_sleep=_log_retry(operation, model_name),
                reraise=True,
            ):
                with attempt:
                    async with self._sessionmaker() as session:
                        if write:
                            async with session.begin():
                                result = await work(session)
                        else:
                            result = await work(session)
        except SemanticModelStoreError:
            raise
        except (SQLAlchemyError, ValueError) as exc:
            elapsed_ms = _elapsed_ms(started)
            log.error(
                "document_store_operation_failed",
                operation=operation,
                model=model_name,
                elapsed_ms=elapsed_ms,
                exc_info=True,
            )
            raise PersistenceOperationError(
                f"Document store {operation} failed for '{model_name}' after {elapsed_ms} ms: {exc}",
                model_name=model_name,
                elapsed_ms=elapsed_ms,
            ) from exc
        return result, _elapsed_ms(started)


def partition_key_for(model_path: str) -> str:
    """Sanitized last segment of the validated model path."""

    path = validate_and_sanitize_path(model_path)
    segment = os.path.basename(path.rstrip("/\\"))
    if not segment:
        raise ModelValidationError(f"Model path has no name segment: {model_path}", param="model_path")
    return sanitize_entity_name(segment)


async def _select_entities(
    session: AsyncSession, key: str, kind: EntityKind | None = None
) -> list[tuple[EntityKind, SemanticModelEntity]]:
    stmt = select(EntityDocument).where(EntityDocument.partition_key == key)
    if kind is not None:
        stmt = stmt.where(EntityDocument.kind == kind.value)
    stmt = stmt.order_by(EntityDocument.kind, EntityDocument.position)
    rows = (await session.execute(stmt)).scalars().all()
    return [(EntityKind(r.kind), entity_from_document(r.body, EntityKind(r.kind))) for r in rows]


def _log_retry(operation: str, model_name: str | None):
    def before_sleep(retry_state: RetryCallState) -> None:
        log.warning(
            "document_store_retry",
            operation=operation,
            model=model_name,
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    return before_sleep


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# --- Module Notes -----------------------------------------------------------
# Entity rows are replaced wholesale on every save (delete + insert); the model row is
# upserted, so `created_at` survives re-saves.
