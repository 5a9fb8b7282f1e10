"""
tests.test_models

SemanticModel aggregate and entity graph.

Responsibilities:
- Entity document shape (PascalCase keys, kind discriminator) and helpers.
- Aggregate invariants: unique (schema, name), identity-based removal, finders.
- Change-tracking integration and disposal.
- Exhaustive visitor traversal.
"""

from __future__ import annotations

import pytest

from semantic_model_store.errors import DisposedError, ModelValidationError
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelColumn,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
    entity_from_document,
    entity_to_document,
)
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.models.visitor import SemanticModelVisitor


def test_entity_document_uses_pascal_case_and_kind(model_factory) -> None:
    table = model_factory().tables[0]
    doc = entity_to_document(table)
    assert doc["Schema"] == "dbo"
    assert doc["Name"] == "Customer"
    assert doc["Kind"] == "table"
    assert doc["Columns"][0]["IsPrimaryKey"] is True
    assert doc["Indexes"][0]["ColumnName"] == "Id"
    assert "SemanticDescription" not in doc


def test_entity_from_document_dispatches_on_kind() -> None:
    view = SemanticModelView(schema_name="rpt", name="Totals", definition="SELECT 1")
    restored = entity_from_document(entity_to_document(view))
    assert isinstance(restored, SemanticModelView)
    assert restored.definition == "SELECT 1"

    untagged = {"Schema": "dbo", "Name": "GetAll"}
    procedure = entity_from_document(untagged, EntityKind.stored_procedure)
    assert isinstance(procedure, SemanticModelStoredProcedure)


def test_entity_paths_and_kind_folders() -> None:
    table = SemanticModelTable(schema_name="dbo", name="Order/Line")
    assert table.entity_kind is EntityKind.table
    assert table.file_name == "dbo.Order_Line.json"
    assert table.relative_path == "tables/dbo.Order_Line.json"
    assert EntityKind.stored_procedure.folder == "storedprocedures"


def test_set_semantic_description_stamps_time() -> None:
    table = SemanticModelTable(schema_name="dbo", name="Customer")
    assert table.semantic_description_last_update is None
    table.set_semantic_description("Customers who placed at least one order.")
    assert table.semantic_description == "Customers who placed at least one order."
    assert table.semantic_description_last_update is not None
    assert "SemanticDescriptionLastUpdate" in entity_to_document(table)


def test_entity_str_renders_summary(model_factory) -> None:
    rendered = str(model_factory().tables[0])
    assert rendered.startswith("Entity: [dbo].[Customer]")
    assert "Customer records" in rendered
    assert "Id (int)" in rendered


def test_column_container_removes_by_identity() -> None:
    table = SemanticModelTable(schema_name="dbo", name="T")
    first = SemanticModelColumn(schema_name="dbo", name="A")
    twin = SemanticModelColumn(schema_name="dbo", name="A")
    table.add_column(first)
    table.add_column(twin)
    assert table.remove_column(twin)
    assert table.columns[0] is first
    assert not table.remove_column(twin)


def test_duplicate_entity_rejected(model_factory) -> None:
    model = model_factory()
    with pytest.raises(ModelValidationError, match="Duplicate table"):
        model.add_table(SemanticModelTable(schema_name="dbo", name="Customer"))
    # Same name in another schema is a different entity.
    model.add_table(SemanticModelTable(schema_name="sales", name="Customer"))
    assert len(model.tables) == 2


def test_remove_uses_identity_not_equality(model_factory) -> None:
    model = model_factory()
    lookalike = SemanticModelTable.model_validate(entity_to_document(model.tables[0]))
    assert lookalike == model.tables[0]
    assert not model.remove_table(lookalike)
    assert model.remove_table(model.tables[0])
    assert model.tables == []


@pytest.mark.asyncio
async def test_finders(model_factory) -> None:
    model = model_factory(tables=3, views=1, stored_procedures=1)
    assert (await model.find_table("dbo", "Table2")).name == "Table2"
    assert await model.find_table("dbo", "Missing") is None
    assert (await model.find_view("dbo", "View0")).definition == "SELECT 1 AS One"
    assert (await model.find_stored_procedure("dbo", "Proc0")).parameters == "@Id int"
    selected = await model.select_tables([("dbo", "Table2"), ("dbo", "Customer"), ("x", "y")])
    assert [t.name for t in selected] == ["Customer", "Table2"]


def test_change_tracking_marks_added_and_removed(model_factory) -> None:
    model = model_factory(tables=0)
    model.enable_change_tracking()
    assert not model.has_unsaved_changes

    table = SemanticModelTable(schema_name="dbo", name="T")
    model.add_table(table)
    assert model.is_dirty(table)
    assert model.has_unsaved_changes

    model.accept_all_changes()
    assert not model.is_dirty(table)
    assert not model.has_unsaved_changes

    model.remove_table(table)
    assert model.is_dirty(table)


def test_column_edits_are_not_tracked(model_factory) -> None:
    model = model_factory()
    model.enable_change_tracking()
    model.tables[0].add_column(SemanticModelColumn(schema_name="dbo", name="Phone"))
    assert not model.has_unsaved_changes


def test_enable_change_tracking_is_idempotent(model_factory) -> None:
    model = model_factory()
    tracker = model.enable_change_tracking()
    assert model.enable_change_tracking() is tracker
    assert model.change_tracker is tracker


@pytest.mark.asyncio
async def test_disposed_model_rejects_access(model_factory) -> None:
    model = model_factory()
    tracker = model.enable_change_tracking()
    model.dispose()
    model.dispose()
    assert model.is_disposed
    assert model.change_tracker is None
    with pytest.raises(DisposedError):
        model.add_table(SemanticModelTable(schema_name="dbo", name="X"))
    with pytest.raises(DisposedError):
        await model.get_tables()
    with pytest.raises(DisposedError):
        tracker.mark_as_dirty(object())


class _RecordingVisitor(SemanticModelVisitor):
    def __init__(self) -> None:
        self.seen: list[str] = []

    def visit_semantic_model(self, model: SemanticModel) -> None:
        self.seen.append(f"model:{model.name}")

    def visit_table(self, table) -> None:
        self.seen.append(f"table:{table.name}")

    def visit_view(self, view) -> None:
        self.seen.append(f"view:{view.name}")

    def visit_stored_procedure(self, stored_procedure) -> None:
        self.seen.append(f"proc:{stored_procedure.name}")

    def visit_column(self, column) -> None:
        self.seen.append(f"column:{column.name}")

    def visit_index(self, index) -> None:
        self.seen.append(f"index:{index.name}")


@pytest.mark.asyncio
async def test_visitor_walks_model_in_order(model_factory) -> None:
    visitor = _RecordingVisitor()
    await model_factory(views=1, stored_procedures=1).accept(visitor)
    assert visitor.seen == [
        "model:Sales",
        "table:Customer",
        "column:Id",
        "column:Email",
        "index:PK_Customer",
        "view:View0",
        "column:One",
        "proc:Proc0",
    ]
