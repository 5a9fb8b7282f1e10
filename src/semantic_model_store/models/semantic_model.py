"""
semantic_model_store.models.semantic_model

The SemanticModel aggregate root.

Responsibilities:
- Own the table / view / stored-procedure collections and enforce unique (schema, name).
- Switch collections into lazy mode backed by a persistence strategy.
- Report add/remove operations to an attached ChangeTracker.
- Release proxies and tracker on dispose.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, TypeVar

from semantic_model_store.errors import DisposedError, ModelValidationError
from semantic_model_store.models.change_tracking import ChangeTracker
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelEntity,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)
from semantic_model_store.models.lazy_loading import LazyLoadingProxy
from semantic_model_store.models.visitor import SemanticModelVisitor, visit_node

if TYPE_CHECKING:
    from semantic_model_store.persistence.base import PersistenceStrategy

E = TypeVar("E", SemanticModelTable, SemanticModelView, SemanticModelStoredProcedure)


class SemanticModel:
    def __init__(
        self,
        name: str,
        source: str,
        description: str | None = None,
        *,
        tables: Iterable[SemanticModelTable] = (),
        views: Iterable[SemanticModelView] = (),
        stored_procedures: Iterable[SemanticModelStoredProcedure] = (),
    ) -> None:
        self.name = name
        self.source = source
        self.description = description

        self._collections: dict[EntityKind, list] = {kind: [] for kind in EntityKind}
        self._proxies: dict[EntityKind, LazyLoadingProxy] = {}
        self._change_tracker: ChangeTracker | None = None
        self._disposed = False

        for table in tables:
            self._add(EntityKind.table, table)
        for view in views:
            self._add(EntityKind.view, view)
        for procedure in stored_procedures:
            self._add(EntityKind.stored_procedure, procedure)

    # --- Eager views of the collections ------------------------------------

    @property
    def tables(self) -> list[SemanticModelTable]:
        """In-memory tables. In lazy mode this holds only tables added since enabling it."""
        return list(self._collections[EntityKind.table])

    @property
    def views(self) -> list[SemanticModelView]:
        return list(self._collections[EntityKind.view])

    @property
    def stored_procedures(self) -> list[SemanticModelStoredProcedure]:
        return list(self._collections[EntityKind.stored_procedure])

    # --- Collection access (lazy-aware) ------------------------------------

    async def get_tables(self) -> list[SemanticModelTable]:
        return await self._get(EntityKind.table)

    async def get_views(self) -> list[SemanticModelView]:
        return await self._get(EntityKind.view)

    async def get_stored_procedures(self) -> list[SemanticModelStoredProcedure]:
        return await self._get(EntityKind.stored_procedure)

    async def get_entities(self, kind: EntityKind) -> list[SemanticModelEntity]:
        return await self._get(kind)

    def materialized_entities(self, kind: EntityKind) -> list[SemanticModelEntity]:
        """Entities already in memory (eager items plus a loaded lazy collection). Never loads."""
        self._ensure_not_disposed()
        return [*self._loaded(kind), *self._collections[kind]]

    # --- Mutation ------------------------------------------------------------

    def add_table(self, table: SemanticModelTable) -> None:
        self._add(EntityKind.table, table)

    def remove_table(self, table: SemanticModelTable) -> bool:
        return self._remove(EntityKind.table, table)

    def add_view(self, view: SemanticModelView) -> None:
        self._add(EntityKind.view, view)

    def remove_view(self, view: SemanticModelView) -> bool:
        return self._remove(EntityKind.view, view)

    def add_stored_procedure(self, stored_procedure: SemanticModelStoredProcedure) -> None:
        self._add(EntityKind.stored_procedure, stored_procedure)

    def remove_stored_procedure(self, stored_procedure: SemanticModelStoredProcedure) -> bool:
        return self._remove(EntityKind.stored_procedure, stored_procedure)

    # --- Finders -------------------------------------------------------------

    async def find_table(self, schema: str, name: str) -> SemanticModelTable | None:
        return _find(await self.get_tables(), schema, name)

    async def find_view(self, schema: str, name: str) -> SemanticModelView | None:
        return _find(await self.get_views(), schema, name)

    async def find_stored_procedure(
        self, schema: str, name: str
    ) -> SemanticModelStoredProcedure | None:
        return _find(await self.get_stored_procedures(), schema, name)

    async def select_tables(self, keys: Iterable[tuple[str, str]]) -> list[SemanticModelTable]:
        """Return the tables matching the given (schema, name) pairs, in model order."""

        wanted = set(keys)
        return [t for t in await self.get_tables() if t.key in wanted]

    # --- Lazy loading --------------------------------------------------------

    def enable_lazy_loading(self, model_path: str, strategy: PersistenceStrategy) -> None:
        """
        Back each collection with a proxy that loads it from `strategy` on first access.
        Eager lists are cleared: lazy and eager mode are exclusive per instance.
        """

        self._ensure_not_disposed()
        for proxy in self._proxies.values():
            proxy.dispose()
        self._proxies = {
            kind: LazyLoadingProxy(_loader(strategy, model_path, kind), name=kind.folder)
            for kind in EntityKind
        }
        for collection in self._collections.values():
            collection.clear()

    @property
    def is_lazy_loading_enabled(self) -> bool:
        return bool(self._proxies)

    def lazy_proxy(self, kind: EntityKind) -> LazyLoadingProxy | None:
        return self._proxies.get(kind)

    # --- Change tracking -----------------------------------------------------

    def enable_change_tracking(self, tracker: ChangeTracker | None = None) -> ChangeTracker:
        self._ensure_not_disposed()
        if self._change_tracker is None:
            self._change_tracker = tracker or ChangeTracker()
        return self._change_tracker

    @property
    def change_tracker(self) -> ChangeTracker | None:
        return self._change_tracker

    @property
    def is_change_tracking_enabled(self) -> bool:
        return self._change_tracker is not None

    @property
    def has_unsaved_changes(self) -> bool:
        return self._change_tracker is not None and self._change_tracker.has_changes

    def is_dirty(self, entity: object) -> bool:
        return self._change_tracker is not None and self._change_tracker.is_dirty(entity)

    def accept_all_changes(self) -> None:
        if self._change_tracker is not None:
            self._change_tracker.accept_all_changes()

    # --- Traversal -----------------------------------------------------------

    async def accept(self, visitor: SemanticModelVisitor) -> None:
        self._ensure_not_disposed()
        visitor.visit_semantic_model(self)
        for kind in EntityKind:
            for entity in await self._get(kind):
                visit_node(visitor, entity)

    # --- Lifecycle -----------------------------------------------------------

    def dispose(self) -> None:
        if self._disposed:
            return
        for proxy in self._proxies.values():
            proxy.dispose()
        self._proxies.clear()
        if self._change_tracker is not None:
            self._change_tracker.dispose()
            self._change_tracker = None
        self._disposed = True

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def __repr__(self) -> str:
        return f"SemanticModel(name={self.name!r}, source={self.source!r})"

    # --- Internals -----------------------------------------------------------

    async def _get(self, kind: EntityKind) -> list:
        self._ensure_not_disposed()
        proxy = self._proxies.get(kind)
        if proxy is None:
            return list(self._collections[kind])
        loaded = await proxy.get_entities()
        return [*loaded, *self._collections[kind]]

    def _loaded(self, kind: EntityKind) -> list:
        proxy = self._proxies.get(kind)
        if proxy is None:
            return []
        return proxy.peek() or []

    def _add(self, kind: EntityKind, entity: SemanticModelEntity) -> None:
        self._ensure_not_disposed()
        if entity is None:
            raise ModelValidationError(f"{kind.value} must not be None", param=kind.value)
        proxy = self._proxies.get(kind)
        if proxy is not None and not proxy.is_loaded:
            raise ModelValidationError(
                f"Cannot add {kind.value} [{entity.schema_name}].[{entity.name}] before the "
                f"lazy {kind.folder} collection is loaded",
                param=kind.value,
            )
        for existing in (*self._collections[kind], *self._loaded(kind)):
            if existing.key == entity.key:
                raise ModelValidationError(
                    f"Duplicate {kind.value} [{entity.schema_name}].[{entity.name}]",
                    param=kind.value,
                )
        self._collections[kind].append(entity)
        if self._change_tracker is not None:
            self._change_tracker.mark_as_dirty(entity)

    def _remove(self, kind: EntityKind, entity: SemanticModelEntity) -> bool:
        self._ensure_not_disposed()
        removed = _remove_instance(self._collections[kind], entity) or _remove_instance(
            self._loaded(kind), entity
        )
        if removed and self._change_tracker is not None:
            self._change_tracker.mark_as_dirty(entity)
        return removed

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DisposedError(f"SemanticModel[{self.name}]")


def _loader(strategy: PersistenceStrategy, model_path: str, kind: EntityKind):
    async def load() -> list[SemanticModelEntity]:
        return await strategy.load_entities(model_path, kind)

    return load


def _find(entities: list[E], schema: str, name: str) -> E | None:
    for entity in entities:
        if entity.schema_name == schema and entity.name == name:
            return entity
    return None


def _remove_instance(items: list, entity: object) -> bool:
    for i, candidate in enumerate(items):
        if candidate is entity:
            del items[i]
            return True
    return False


# --- Module Notes -----------------------------------------------------------
# Column/index edits inside an entity are not reported to the tracker; only
# collection-level add/remove marks an entity dirty.
# In lazy mode an add needs the collection in memory (await `get_entities` first) so
# the (schema, name) check sees the persisted entities too.
