"""
semantic_model_store.models.visitor

Exhaustive traversal over the semantic model graph.

Responsibilities:
- Define the visitor interface (no-op defaults, override what you need).
- Dispatch nodes with a closed `match` so a new entity kind fails type checking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union, assert_never

from semantic_model_store.models.entities import (
    SemanticModelColumn,
    SemanticModelIndex,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)

if TYPE_CHECKING:
    from semantic_model_store.models.semantic_model import SemanticModel

SemanticModelNode = Union[
    SemanticModelTable,
    SemanticModelView,
    SemanticModelStoredProcedure,
    SemanticModelColumn,
    SemanticModelIndex,
]


class SemanticModelVisitor:
    def visit_semantic_model(self, model: SemanticModel) -> None:
        pass

    def visit_table(self, table: SemanticModelTable) -> None:
        pass

    def visit_view(self, view: SemanticModelView) -> None:
        pass

    def visit_stored_procedure(self, stored_procedure: SemanticModelStoredProcedure) -> None:
        pass

    def visit_column(self, column: SemanticModelColumn) -> None:
        pass

    def visit_index(self, index: SemanticModelIndex) -> None:
        pass


def visit_node(visitor: SemanticModelVisitor, node: SemanticModelNode) -> None:
    """Visit `node` and, for containers, its columns and indexes."""

    match node:
        case SemanticModelTable():
            visitor.visit_table(node)
            for column in node.columns:
                visit_node(visitor, column)
            for index in node.indexes:
                visit_node(visitor, index)
        case SemanticModelView():
            visitor.visit_view(node)
            for column in node.columns:
                visit_node(visitor, column)
        case SemanticModelStoredProcedure():
            visitor.visit_stored_procedure(node)
        case SemanticModelColumn():
            visitor.visit_column(node)
        case SemanticModelIndex():
            visitor.visit_index(node)
        case _:
            assert_never(node)


# --- Module Notes -----------------------------------------------------------
# `SemanticModel.accept` drives the walk: model first, then tables, views and
# stored procedures in insertion order.
