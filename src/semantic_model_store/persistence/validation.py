"""
semantic_model_store.persistence.validation

Checks every strategy runs on a model before it touches its backend.

Responsibilities:
- Run input-security checks over the model path, model fields and entity names.
- Reject models whose collections repeat a (schema, name) key.
- Reject models whose entities would share one document file name.
"""

from __future__ import annotations

import os

from semantic_model_store.errors import ModelValidationError
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelEntity,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.models.visitor import SemanticModelVisitor
from semantic_model_store.security.names import validate_input_security

EntityCollections = dict[EntityKind, list[SemanticModelEntity]]


class SecurityValidationVisitor(SemanticModelVisitor):
    def visit_semantic_model(self, model: SemanticModel) -> None:
        if not model.name or not model.name.strip():
            raise ModelValidationError("Semantic model name must not be empty", param="model")
        validate_input_security(model.name, "SemanticModel.name")
        if model.description and model.description.strip():
            validate_input_security(model.description, "SemanticModel.description")

    def visit_table(self, table: SemanticModelTable) -> None:
        _validate_entity_names(table, "Table")

    def visit_view(self, view: SemanticModelView) -> None:
        _validate_entity_names(view, "View")

    def visit_stored_procedure(self, stored_procedure: SemanticModelStoredProcedure) -> None:
        _validate_entity_names(stored_procedure, "StoredProcedure")


async def validate_model_for_save(model: SemanticModel, model_path: str) -> EntityCollections:
    """
    Validate `model` for persisting at `model_path` and return its collections.

    Raises `ModelValidationError` on unsafe input or a repeated (schema, name) key.
    Lazy collections are loaded here, so strategies never see a partial model.
    """

    if model is None:
        raise ModelValidationError("Semantic model must not be None", param="model")
    validate_input_security(model_path, "model_path")
    await model.accept(SecurityValidationVisitor())

    entities: EntityCollections = {kind: await model.get_entities(kind) for kind in EntityKind}
    for kind, items in entities.items():
        seen: set[tuple[str, str]] = set()
        for entity in items:
            if entity.key in seen:
                raise ModelValidationError(
                    f"Duplicate {kind.value} [{entity.schema_name}].[{entity.name}]",
                    param="model",
                )
            seen.add(entity.key)
    return entities


def ensure_unique_file_names(entities: EntityCollections) -> None:
    """
    Reject entities whose sanitized `<schema>.<name>.json` paths collide.

    Also surfaces name sanitization errors (length, executable extensions).
    """

    owners: dict[str, SemanticModelEntity] = {}
    for items in entities.values():
        for entity in items:
            relative = os.path.normcase(entity.relative_path)
            other = owners.setdefault(relative, entity)
            if other is not entity:
                raise ModelValidationError(
                    f"[{entity.schema_name}].[{entity.name}] and "
                    f"[{other.schema_name}].[{other.name}] map to the same file "
                    f"'{entity.relative_path}'",
                    param="model",
                )


def _validate_entity_names(entity: SemanticModelEntity, label: str) -> None:
    if entity.name and entity.name.strip():
        validate_input_security(entity.name, f"{label}.name")
    if entity.schema_name and entity.schema_name.strip():
        validate_input_security(entity.schema_name, f"{label}.schema")
