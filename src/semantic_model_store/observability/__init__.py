"""
semantic_model_store.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Per-operation context propagation for consistent log enrichment.
"""

# Package marker.
