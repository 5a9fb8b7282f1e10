"""
semantic_model_store.observability.context

Operation-scoped logging context.

Responsibilities:
- Generate an operation id for each repository call.
- Bind operation metadata into structlog contextvars for the duration of the call.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


@contextmanager
def operation_context(*, operation: str, path: str) -> Iterator[str]:
    """
    Every log line emitted inside the block carries `operation_id`, `operation` and
    `model_path`. Contextvars are task-local, so concurrent operations do not leak
    into each other.
    """

    operation_id = str(uuid.uuid4())
    with structlog.contextvars.bound_contextvars(
        operation_id=operation_id,
        operation=operation,
        model_path=path,
    ):
        yield operation_id


# --- Module Notes -----------------------------------------------------------
# `bound_contextvars` restores the previous values on exit, so nested operations
# (save_changes delegating to save_model) keep the outer context afterwards.
