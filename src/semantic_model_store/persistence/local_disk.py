"""
semantic_model_store.persistence.local_disk

Local filesystem persistence strategy.

Responsibilities:
- Save a model atomically: stage every document in a private temp directory, then move
  the files over the target directory.
- Load the root document and hydrate each referenced entity from its own file.
- Exists / list / delete with path validation in front of every filesystem call.

Layout of a model directory:
    semanticmodel.json, index.json, tables/<schema>.<name>.json,
    views/<schema>.<name>.json, storedprocedures/<schema>.<name>.json
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import tempfile
import time

from semantic_model_store.errors import (
    ModelNotFoundError,
    ModelValidationError,
    PersistenceOperationError,
    SemanticModelStoreError,
)
from semantic_model_store.models.documents import (
    INDEX_DOCUMENT_NAME,
    ROOT_DOCUMENT_NAME,
    EntityReference,
    RootDocument,
    build_index_document,
    build_root_document,
    dump_document,
)
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelEntity,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
    entity_from_document,
    entity_to_document,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.observability.logging import get_logger
from semantic_model_store.persistence.base import PersistenceStrategy
from semantic_model_store.persistence.validation import (
    ensure_unique_file_names,
    validate_model_for_save,
)
from semantic_model_store.security.paths import (
    is_path_within_directory,
    validate_and_sanitize_path,
)

log = get_logger(__name__)

TEMP_DIR_PREFIX = "semanticmodel_temp_"
DELETE_LOCK_NAME = ".delete.lock"


class LocalDiskPersistenceStrategy(PersistenceStrategy):
    name = "LocalDisk"

    def __init__(self, *, temp_dir: str | None = None) -> None:
        # None -> system temp directory. Staging on the target's filesystem makes the
        # final moves plain renames.
        self._temp_dir = temp_dir

    async def save_model(self, model: SemanticModel, model_path: str) -> None:
        if model is None:
            raise ModelValidationError("Semantic model must not be None", param="model")
        path = validate_and_sanitize_path(model_path)
        entities = await validate_model_for_save(model, path)
        ensure_unique_file_names(entities)

        started = time.perf_counter()
        try:
            await asyncio.to_thread(self._write_atomically, model, entities, path)
        except OSError as exc:
            elapsed_ms = _elapsed_ms(started)
            log.error("model_save_failed", model=model.name, path=path, exc_info=True)
            raise PersistenceOperationError(
                f"Failed to save semantic model '{model.name}': {exc}",
                model_name=model.name,
                elapsed_ms=elapsed_ms,
            ) from exc

        log.info(
            "model_saved",
            model=model.name,
            path=path,
            tables=len(entities[EntityKind.table]),
            views=len(entities[EntityKind.view]),
            stored_procedures=len(entities[EntityKind.stored_procedure]),
            elapsed_ms=_elapsed_ms(started),
        )

    async def load_model(self, model_path: str) -> SemanticModel:
        path = validate_and_sanitize_path(model_path)
        started = time.perf_counter()
        try:
            model = await asyncio.to_thread(self._read_model, path)
        except SemanticModelStoreError:
            raise
        except (OSError, ValueError) as exc:
            log.error("model_load_failed", path=path, exc_info=True)
            raise PersistenceOperationError(
                f"Failed to load semantic model from '{path}': {exc}",
                elapsed_ms=_elapsed_ms(started),
            ) from exc

        log.info("model_loaded", model=model.name, path=path, elapsed_ms=_elapsed_ms(started))
        return model

    async def load_entities(self, model_path: str, kind: EntityKind) -> list[SemanticModelEntity]:
        path = validate_and_sanitize_path(model_path)
        try:
            return await asyncio.to_thread(self._read_collection, path, kind)
        except SemanticModelStoreError:
            raise
        except (OSError, ValueError) as exc:
            raise PersistenceOperationError(
                f"Failed to load {kind.folder} from '{path}': {exc}"
            ) from exc

    async def exists(self, model_path: str) -> bool:
        path = validate_and_sanitize_path(model_path)
        return await asyncio.to_thread(os.path.isfile, os.path.join(path, ROOT_DOCUMENT_NAME))

    async def list_models(self, root_path: str) -> list[str]:
        root = validate_and_sanitize_path(root_path)

        def scan() -> list[str]:
            if not os.path.isdir(root):
                return []
            with os.scandir(root) as it:
                return sorted(
                    entry.name
                    for entry in it
                    if entry.is_dir() and os.path.isfile(os.path.join(entry.path, ROOT_DOCUMENT_NAME))
                )

        try:
            return await asyncio.to_thread(scan)
        except OSError as exc:
            raise PersistenceOperationError(f"Failed to list models under '{root}': {exc}") from exc

    async def delete_model(self, model_path: str) -> None:
        path = validate_and_sanitize_path(model_path)
        deleted = await asyncio.to_thread(_delete_directory, path)
        if deleted:
            log.info("model_deleted", path=path)
        else:
            log.warning("model_delete_missing", path=path)

    # --- Blocking helpers (run in a worker thread) ---------------------------

    def _write_atomically(
        self,
        model: SemanticModel,
        entities: dict[EntityKind, list[SemanticModelEntity]],
        path: str,
    ) -> None:
        staging = tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX, dir=self._temp_dir)
        try:
            _write_documents(staging, model, entities)
            os.makedirs(path, exist_ok=True)
            _move_contents(staging, path)
        finally:
            try:
                shutil.rmtree(staging)
            except OSError:
                log.warning("temp_dir_cleanup_failed", temp_dir=staging, exc_info=True)

    def _read_model(self, path: str) -> SemanticModel:
        root = _read_root_document(path)
        model = SemanticModel(root.name, root.source, root.description)
        for kind in EntityKind:
            for entity in _read_entities(path, root, kind):
                match entity:
                    case SemanticModelTable():
                        model.add_table(entity)
                    case SemanticModelView():
                        model.add_view(entity)
                    case SemanticModelStoredProcedure():
                        model.add_stored_procedure(entity)
        return model

    def _read_collection(self, path: str, kind: EntityKind) -> list[SemanticModelEntity]:
        return _read_entities(path, _read_root_document(path), kind)


def _write_documents(
    directory: str,
    model: SemanticModel,
    entities: dict[EntityKind, list[SemanticModelEntity]],
) -> None:
    for kind in EntityKind:
        folder = os.path.join(directory, kind.folder)
        os.makedirs(folder, exist_ok=True)
        for entity in entities[kind]:
            _write_json(os.path.join(folder, entity.file_name), entity_to_document(entity))

    fields = {"name": model.name, "source": model.source, "description": model.description}
    _write_json(
        os.path.join(directory, ROOT_DOCUMENT_NAME),
        dump_document(build_root_document(**fields, entities=entities)),
    )
    _write_json(
        os.path.join(directory, INDEX_DOCUMENT_NAME),
        dump_document(build_index_document(**fields, entities=entities)),
    )


def _move_contents(source: str, destination: str) -> None:
    # Directories are recreated first so empty collections still get their folder.
    for current, _dirs, files in os.walk(source):
        relative = os.path.relpath(current, source)
        target_dir = destination if relative == "." else os.path.join(destination, relative)
        os.makedirs(target_dir, exist_ok=True)
        for file_name in files:
            shutil.move(os.path.join(current, file_name), os.path.join(target_dir, file_name))


def _read_root_document(path: str) -> RootDocument:
    root_file = os.path.join(path, ROOT_DOCUMENT_NAME)
    if not os.path.isfile(root_file):
        raise ModelNotFoundError("Semantic model not found", path=path)
    with open(root_file, encoding="utf-8") as fh:
        return RootDocument.model_validate_json(fh.read())


def _read_entities(path: str, root: RootDocument, kind: EntityKind) -> list[SemanticModelEntity]:
    if not os.path.isdir(os.path.join(path, kind.folder)):
        return []
    return [_read_entity(path, reference, kind) for reference in root.references(kind)]


def _read_entity(path: str, reference: EntityReference, kind: EntityKind) -> SemanticModelEntity:
    entity_file = os.path.join(path, *reference.path.split("/"))
    if not is_path_within_directory(path, entity_file):
        raise ModelValidationError(
            f"Entity reference escapes the model directory: {reference.path}", param="path"
        )
    if not os.path.isfile(entity_file):
        raise ModelNotFoundError(
            f"Entity document not found for [{reference.schema_name}].[{reference.name}]",
            path=entity_file,
        )
    with open(entity_file, encoding="utf-8") as fh:
        return entity_from_document(json.load(fh), kind)


def _delete_directory(path: str) -> bool:
    if not os.path.isdir(path):
        return False
    if not os.path.isfile(os.path.join(path, ROOT_DOCUMENT_NAME)):
        raise PersistenceOperationError(
            f"Directory '{path}' does not contain a semantic model and will not be deleted"
        )

    # Advisory only: another process that ignores the lock can still write here.
    lock_file = os.path.join(path, DELETE_LOCK_NAME)
    try:
        with open(lock_file, "x", encoding="utf-8") as fh:
            fh.write(str(os.getpid()))
    except OSError as exc:
        raise PersistenceOperationError(
            f"Could not acquire delete lock for '{path}': {exc}"
        ) from exc

    try:
        shutil.rmtree(path)
    except OSError as exc:
        raise PersistenceOperationError(f"Failed to delete semantic model at '{path}': {exc}") from exc
    return True


def _write_json(file_path: str, document: dict) -> None:
    with open(file_path, "w", encoding="utf-8") as fh:
        json.dump(document, fh, indent=2, ensure_ascii=False)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


# --- Module Notes -----------------------------------------------------------
# Entity files of entities removed from the model are not pruned by a save; the root
# document stops referencing them, so they are ignored on load.
# A failure while moving staged files can leave the target partially updated; callers
# retry the save.
