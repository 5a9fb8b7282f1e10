"""
semantic_model_store.db.models

Document-store schema.

Responsibilities:
- ModelDocument: one row per semantic model (partition key + root document).
- EntityDocument: one row per table / view / stored procedure holding its full JSON body.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from semantic_model_store.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ModelDocument(Base):
    __tablename__ = "semantic_models"

    # Partition key: sanitized last segment of the model path.
    partition_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(String(1024), nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    entities: Mapped[list[EntityDocument]] = relationship(
        back_populates="model",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class EntityDocument(Base):
    __tablename__ = "semantic_model_entities"
    __table_args__ = (
        UniqueConstraint("partition_key", "kind", "schema_name", "name", name="uq_entity_key"),
        Index("ix_semantic_model_entities_partition_kind", "partition_key", "kind"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    partition_key: Mapped[str] = mapped_column(
        ForeignKey("semantic_models.partition_key", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    schema_name: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    # Insertion order within a collection, so loads return entities in saved order.
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    body: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    model: Mapped[ModelDocument] = relationship(back_populates="entities")


# --- Module Notes -----------------------------------------------------------
# Entity bodies are stored as JSON so the on-disk and document-store representations
# share one serializer (`models.entities.entity_to_document`).
