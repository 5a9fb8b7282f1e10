"""
semantic_model_store.security

Input hardening for every filesystem- or backend-facing operation.

Responsibilities:
- Path validation and normalization (`security.paths`).
- Entity name sanitization and injection checks (`security.names`).
"""

from semantic_model_store.security.names import (
    create_safe_file_name,
    is_valid_entity_name,
    sanitize_entity_name,
    validate_input_security,
)
from semantic_model_store.security.paths import (
    is_path_within_directory,
    validate_and_sanitize_path,
)

__all__ = [
    "create_safe_file_name",
    "is_path_within_directory",
    "is_valid_entity_name",
    "sanitize_entity_name",
    "validate_and_sanitize_path",
    "validate_input_security",
]
