"""
semantic_model_store.models.change_tracking

Dirty-entity bookkeeping for one SemanticModel instance.

Responsibilities:
- Track which entity instances were added/removed since the last accepted save.
- Notify listeners on dirty/clean transitions.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from semantic_model_store.errors import DisposedError
from semantic_model_store.observability.logging import get_logger

log = get_logger(__name__)

StateChangedListener = Callable[[object, bool], None]


class ChangeTracker:
    """
    Tracks entities by instance identity, not by (schema, name).
    Dirty state therefore does not survive a reload and cannot diff two loaded copies.
    """

    def __init__(self) -> None:
        # id(entity) -> entity; holding the reference keeps the id from being reused.
        self._dirty: dict[int, object] = {}
        self._listeners: list[StateChangedListener] = []
        self._lock = threading.Lock()
        self._disposed = False

    def add_listener(self, listener: StateChangedListener) -> None:
        self._ensure_not_disposed()
        self._listeners.append(listener)

    def mark_as_dirty(self, entity: object) -> None:
        self._ensure_not_disposed()
        if entity is None:
            raise ValueError("entity must not be None")
        with self._lock:
            if id(entity) in self._dirty:
                return
            self._dirty[id(entity)] = entity
        log.debug("entity_marked_dirty", entity_type=type(entity).__name__)
        self._notify(entity, True)

    def mark_as_clean(self, entity: object) -> None:
        self._ensure_not_disposed()
        if entity is None:
            raise ValueError("entity must not be None")
        with self._lock:
            if self._dirty.get(id(entity)) is not entity:
                return
            del self._dirty[id(entity)]
        log.debug("entity_marked_clean", entity_type=type(entity).__name__)
        self._notify(entity, False)

    def is_dirty(self, entity: object) -> bool:
        self._ensure_not_disposed()
        with self._lock:
            return self._dirty.get(id(entity)) is entity

    @property
    def has_changes(self) -> bool:
        self._ensure_not_disposed()
        with self._lock:
            return bool(self._dirty)

    @property
    def dirty_entity_count(self) -> int:
        with self._lock:
            return len(self._dirty)

    def get_dirty_entities(self) -> list[object]:
        self._ensure_not_disposed()
        with self._lock:
            return list(self._dirty.values())

    def accept_all_changes(self) -> None:
        """Mark every dirty entity clean. Persisted storage is not touched."""

        dirty = self.get_dirty_entities()
        for entity in dirty:
            self.mark_as_clean(entity)
        log.debug("changes_accepted", count=len(dirty))

    def clear(self) -> None:
        """Forget all tracked state without notifying listeners."""

        self._ensure_not_disposed()
        with self._lock:
            count = len(self._dirty)
            self._dirty.clear()
        log.debug("change_tracker_cleared", count=count)

    def dispose(self) -> None:
        if self._disposed:
            return
        self.clear()
        self._listeners.clear()
        self._disposed = True

    def _notify(self, entity: object, is_dirty: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(entity, is_dirty)
            except Exception:
                log.warning(
                    "change_listener_failed",
                    entity_type=type(entity).__name__,
                    is_dirty=is_dirty,
                    exc_info=True,
                )

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DisposedError("ChangeTracker")
