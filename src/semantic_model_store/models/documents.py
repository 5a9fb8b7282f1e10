"""
semantic_model_store.models.documents

Schemas of the root and index documents written next to the entity files.

Responsibilities:
- `RootDocument`: semanticmodel.json, model fields plus name/schema/path references only.
- `IndexDocument`: index.json, counts and relative paths for external inspection.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal

from semantic_model_store.models.entities import EntityKind, SemanticModelEntity

ROOT_DOCUMENT_NAME = "semanticmodel.json"
INDEX_DOCUMENT_NAME = "index.json"


class EntityReference(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    schema_name: str = Field(alias="Schema")
    name: str
    path: str

    @classmethod
    def for_entity(cls, entity: SemanticModelEntity) -> EntityReference:
        return cls(schema_name=entity.schema_name, name=entity.name, path=entity.relative_path)


class RootDocument(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    name: str
    source: str
    description: str | None = None
    tables: list[EntityReference] = Field(default_factory=list)
    views: list[EntityReference] = Field(default_factory=list)
    stored_procedures: list[EntityReference] = Field(default_factory=list)

    def references(self, kind: EntityKind) -> list[EntityReference]:
        match kind:
            case EntityKind.table:
                return self.tables
            case EntityKind.view:
                return self.views
            case EntityKind.stored_procedure:
                return self.stored_procedures


class IndexEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    schema_name: str = Field(alias="schema")
    name: str
    relative_path: str


class IndexCounts(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tables: int = 0
    views: int = 0
    stored_procedures: int = 0


class IndexStructure(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tables: list[IndexEntry] = Field(default_factory=list)
    views: list[IndexEntry] = Field(default_factory=list)
    stored_procedures: list[IndexEntry] = Field(default_factory=list)


class IndexDocument(BaseModel):
    # camelCase keys: this file is meant for external tooling, not for reloading.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    source: str
    description: str | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    counts: IndexCounts = Field(default_factory=IndexCounts)
    structure: IndexStructure = Field(default_factory=IndexStructure)


def build_root_document(
    *,
    name: str,
    source: str,
    description: str | None,
    entities: dict[EntityKind, list[SemanticModelEntity]],
) -> RootDocument:
    return RootDocument(
        name=name,
        source=source,
        description=description,
        tables=[EntityReference.for_entity(e) for e in entities[EntityKind.table]],
        views=[EntityReference.for_entity(e) for e in entities[EntityKind.view]],
        stored_procedures=[
            EntityReference.for_entity(e) for e in entities[EntityKind.stored_procedure]
        ],
    )


def build_index_document(
    *,
    name: str,
    source: str,
    description: str | None,
    entities: dict[EntityKind, list[SemanticModelEntity]],
) -> IndexDocument:
    def entries(kind: EntityKind) -> list[IndexEntry]:
        return [
            IndexEntry(schema_name=e.schema_name, name=e.name, relative_path=e.relative_path)
            for e in entities[kind]
        ]

    return IndexDocument(
        name=name,
        source=source,
        description=description,
        counts=IndexCounts(
            tables=len(entities[EntityKind.table]),
            views=len(entities[EntityKind.view]),
            stored_procedures=len(entities[EntityKind.stored_procedure]),
        ),
        structure=IndexStructure(
            tables=entries(EntityKind.table),
            views=entries(EntityKind.view),
            stored_procedures=entries(EntityKind.stored_procedure),
        ),
    )


def dump_document(document: BaseModel) -> dict:
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)
