"""
semantic_model_store.models

Domain model: the SemanticModel aggregate, its entities, and the lazy-loading /
change-tracking machinery attached to it.
"""

from semantic_model_store.models.change_tracking import ChangeTracker
from semantic_model_store.models.entities import (
    EntityKind,
    SemanticModelColumn,
    SemanticModelEntity,
    SemanticModelIndex,
    SemanticModelStoredProcedure,
    SemanticModelTable,
    SemanticModelView,
)
from semantic_model_store.models.lazy_loading import LazyLoadingProxy, LoadState
from semantic_model_store.models.semantic_model import SemanticModel
from semantic_model_store.models.visitor import SemanticModelVisitor

__all__ = [
    "ChangeTracker",
    "EntityKind",
    "LazyLoadingProxy",
    "LoadState",
    "SemanticModel",
    "SemanticModelColumn",
    "SemanticModelEntity",
    "SemanticModelIndex",
    "SemanticModelStoredProcedure",
    "SemanticModelTable",
    "SemanticModelView",
    "SemanticModelVisitor",
]
