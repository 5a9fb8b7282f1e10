"""
semantic_model_store.errors

Exception taxonomy shared by validators, strategies, cache and repository.

Responsibilities:
- Distinguish validation, not-found, operation and lifecycle failures.
- Carry diagnostic context (parameter, path, model name, elapsed time).
"""

from __future__ import annotations


class SemanticModelStoreError(Exception):
    """Base exception for semantic model store errors."""


class ModelValidationError(SemanticModelStoreError, ValueError):
    """
    Raised before any I/O when a path, name or argument is unsafe or malformed.
    `param` names the offending parameter.
    """

    def __init__(self, message: str, *, param: str | None = None) -> None:
        super().__init__(message)
        self.param = param


class ModelNotFoundError(SemanticModelStoreError, FileNotFoundError):
    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return f"{self.args[0]} ({self.path})"


class PersistenceOperationError(SemanticModelStoreError):
    """
    Wraps backend failures (I/O, parse, database) into one operation error.
    The original exception is chained as `__cause__`.
    """

    def __init__(
        self,
        message: str,
        *,
        model_name: str | None = None,
        elapsed_ms: float | None = None,
    ) -> None:
        super().__init__(message)
        self.model_name = model_name
        self.elapsed_ms = elapsed_ms


class DisposedError(SemanticModelStoreError, RuntimeError):
    def __init__(self, object_name: str) -> None:
        super().__init__(f"Cannot access a disposed object: {object_name}")
        self.object_name = object_name


# --- Module Notes -----------------------------------------------------------
# Validation and not-found errors also subclass the matching builtins (ValueError,
# FileNotFoundError) so callers can catch them without importing this module.
