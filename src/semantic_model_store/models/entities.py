"""
semantic_model_store.models.entities

Entity graph of a semantic model.

Responsibilities:
- Define Table / View / StoredProcedure entities and their Column / Index members.
- Provide the closed tagged union `SemanticModelEntity` keyed on `kind`.
- Map each entity kind to its on-disk folder.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_pascal

from semantic_model_store.security.names import create_safe_file_name


class EntityKind(enum.StrEnum):
    # Values are persisted as the `Kind` discriminator; treat as stable.
    table = "table"
    view = "view"
    stored_procedure = "stored_procedure"

    @property
    def folder(self) -> str:
        return _FOLDERS[self]


_FOLDERS = {
    EntityKind.table: "tables",
    EntityKind.view: "views",
    EntityKind.stored_procedure: "storedprocedures",
}


class _Document(BaseModel):
    # On-disk keys are PascalCase; Python code uses snake_case names.
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


class _NamedItem(_Document):
    schema_name: str = Field(alias="Schema")
    name: str
    description: str | None = None
    semantic_description: str | None = None
    semantic_description_last_update: datetime | None = None
    not_used: bool = False
    not_used_reason: str | None = None

    def set_semantic_description(self, semantic_description: str) -> None:
        """Set the AI-generated description and stamp the update time."""

        self.semantic_description = semantic_description
        self.semantic_description_last_update = datetime.now(timezone.utc)

    @property
    def key(self) -> tuple[str, str]:
        return (self.schema_name, self.name)

    def __str__(self) -> str:
        lines = [f"Entity: [{self.schema_name}].[{self.name}]"]
        if self.description and self.description.strip():
            lines.append("Description:")
            lines.append(self.description)
        return "\n".join(lines) + "\n"


class SemanticModelColumn(_NamedItem):
    type: str | None = None
    is_primary_key: bool = False
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    is_nullable: bool = False
    is_identity: bool = False
    is_computed: bool = False
    is_xml_document: bool = False
    referenced_table: str | None = None
    referenced_column: str | None = None


class SemanticModelIndex(_NamedItem):
    type: str | None = None
    column_name: str | None = None
    is_unique: bool = False
    is_primary_key: bool = False
    is_unique_constraint: bool = False


class _Entity(_NamedItem):
    """Common behavior of top-level entities (the ones stored as their own documents)."""

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind(self.kind)  # type: ignore[attr-defined]

    @property
    def file_name(self) -> str:
        return create_safe_file_name(self.schema_name, self.name)

    @property
    def relative_path(self) -> str:
        # Always posix separators so documents are portable across platforms.
        return f"{self.entity_kind.folder}/{self.file_name}"


class _ColumnContainer(_Document):
    columns: list[SemanticModelColumn] = Field(default_factory=list)

    def add_column(self, column: SemanticModelColumn) -> None:
        self.columns.append(column)

    def remove_column(self, column: SemanticModelColumn) -> bool:
        return _remove_by_identity(self.columns, column)


def _remove_by_identity(items: list, item: object) -> bool:
    # pydantic models compare by value; removal must target the exact instance.
    for i, candidate in enumerate(items):
        if candidate is item:
            del items[i]
            return True
    return False


class SemanticModelTable(_Entity, _ColumnContainer):
    kind: Literal["table"] = "table"
    details: str | None = None
    additional_information: str | None = None
    indexes: list[SemanticModelIndex] = Field(default_factory=list)

    def add_index(self, index: SemanticModelIndex) -> None:
        self.indexes.append(index)

    def remove_index(self, index: SemanticModelIndex) -> bool:
        return _remove_by_identity(self.indexes, index)

    def __str__(self) -> str:
        lines = [super().__str__().rstrip("\n")]
        if self.semantic_description:
            lines += ["Semantic Description:", self.semantic_description]
        if self.details:
            lines += ["Details:", self.details]
        if self.additional_information:
            lines += ["Additional Information:", self.additional_information]
        if self.columns:
            lines.append("Columns:")
            lines += [f"  - {c.name} ({c.type or 'unknown'})" for c in self.columns]
        if self.indexes:
            lines.append("Indexes:")
            lines += [f"  - {i.name} on {i.column_name or '?'}" for i in self.indexes]
        return "\n".join(lines) + "\n"


class SemanticModelView(_Entity, _ColumnContainer):
    kind: Literal["view"] = "view"
    additional_information: str | None = None
    definition: str | None = None

    def __str__(self) -> str:
        lines = [super().__str__().rstrip("\n")]
        if self.semantic_description:
            lines += ["Semantic Description:", self.semantic_description]
        if self.columns:
            lines.append("Columns:")
            lines += [f"  - {c.name} ({c.type or 'unknown'})" for c in self.columns]
        if self.definition:
            lines += ["Definition:", self.definition]
        return "\n".join(lines) + "\n"


class SemanticModelStoredProcedure(_Entity):
    kind: Literal["stored_procedure"] = "stored_procedure"
    parameters: str | None = None
    definition: str | None = None
    additional_information: str | None = None

    def __str__(self) -> str:
        lines = [super().__str__().rstrip("\n")]
        if self.semantic_description:
            lines += ["Semantic Description:", self.semantic_description]
        if self.parameters:
            lines += ["Parameters:", self.parameters]
        if self.definition:
            lines += ["Definition:", self.definition]
        return "\n".join(lines) + "\n"


SemanticModelEntity = Annotated[
    Union[SemanticModelTable, SemanticModelView, SemanticModelStoredProcedure],
    Field(discriminator="kind"),
]

ENTITY_TYPES: dict[EntityKind, type[_Entity]] = {
    EntityKind.table: SemanticModelTable,
    EntityKind.view: SemanticModelView,
    EntityKind.stored_procedure: SemanticModelStoredProcedure,
}

entity_adapter: TypeAdapter[SemanticModelEntity] = TypeAdapter(SemanticModelEntity)


def entity_to_document(entity: SemanticModelEntity) -> dict:
    return entity.model_dump(mode="json", by_alias=True, exclude_none=True)


def entity_from_document(data: dict, kind: EntityKind | None = None) -> SemanticModelEntity:
    """
    Build an entity from its stored document.
    When `kind` is given the document may omit the `Kind` tag (it is implied by the folder).
    """

    if kind is not None:
        return ENTITY_TYPES[kind].model_validate(data)
    return entity_adapter.validate_python(data)


# --- Module Notes -----------------------------------------------------------
# Entities are mutable pydantic models. Change tracking keys on instance identity, so
# never rely on `==` (value equality) to find "the same" entity.
