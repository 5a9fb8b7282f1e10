"""
semantic_model_store.security.names

Entity name sanitization and input security checks.

Responsibilities:
- Turn schema/entity names into safe file names.
- Reject script/template injection, character-flood and binary input.
"""

from __future__ import annotations

import os
import re
import unicodedata
from collections import Counter

from semantic_model_store.errors import ModelValidationError
from semantic_model_store.security.paths import RESERVED_DEVICE_NAMES

MAX_ENTITY_NAME_LENGTH = 128
MAX_FILE_NAME_LENGTH = 255
MAX_CHARACTER_REPETITION = 100

_INVALID_FILE_NAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

DANGEROUS_EXTENSIONS = frozenset(
    {
        ".exe", ".bat", ".cmd", ".com", ".pif", ".scr", ".vbs", ".js", ".jar",
        ".ps1", ".psm1", ".psd1", ".msi", ".dll", ".sys", ".drv",
    }
)

_INJECTION_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE | re.DOTALL)
    for p in (
        r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>",
        r"javascript:",
        r"data:",
        r"vbscript:",
        r"onload\s*=",
        r"onerror\s*=",
        r"onclick\s*=",
        r"<%.*?%>",
        r"\$\{.*?\}",
        r"#\{.*?\}",
        r"\{\{.*?\}\}",
    )
)


def sanitize_entity_name(name: str | None, strict: bool = True) -> str:
    """
    Make `name` safe for use as (part of) a file name.

    Invalid filesystem characters become `_`; in strict mode so do Unicode control and
    format characters. Leading/trailing spaces and dots are trimmed, reserved device
    names get an underscore prefix, and dangerous executable extensions are rejected.
    """

    if name is None or not name.strip():
        raise ModelValidationError("Entity name must not be empty", param="name")
    if len(name) > MAX_ENTITY_NAME_LENGTH:
        raise ModelValidationError(
            f"Entity name exceeds maximum length of {MAX_ENTITY_NAME_LENGTH} characters",
            param="name",
        )

    sanitized = _INVALID_FILE_NAME_CHARS.sub("_", unicodedata.normalize("NFC", name))
    if strict:
        sanitized = "".join(
            "_" if unicodedata.category(ch).startswith("C") else ch for ch in sanitized
        )

    sanitized = sanitized.strip(" .")
    if not sanitized.strip():
        raise ModelValidationError(
            f"Entity name results in empty string after sanitization: {name!r}", param="name"
        )

    stem, extension = os.path.splitext(sanitized)
    if stem.upper() in RESERVED_DEVICE_NAMES:
        sanitized = f"_{sanitized}"

    if extension and extension.lower() in DANGEROUS_EXTENSIONS:
        raise ModelValidationError(
            f"Entity name contains dangerous file extension '{extension}': {name}", param="name"
        )

    if len(sanitized) > MAX_ENTITY_NAME_LENGTH:
        sanitized = sanitized[:MAX_ENTITY_NAME_LENGTH].rstrip(" .")

    return sanitized


def is_valid_entity_name(name: str | None, strict: bool = True) -> bool:
    """True when `name` is already safe and `sanitize_entity_name` would not change it."""

    if name is None or not name.strip() or len(name) > MAX_ENTITY_NAME_LENGTH:
        return False
    if _INVALID_FILE_NAME_CHARS.search(name):
        return False
    if strict and any(unicodedata.category(ch).startswith("C") for ch in name):
        return False
    if name.strip(" .") != name:
        return False

    stem, extension = os.path.splitext(name)
    if stem.upper() in RESERVED_DEVICE_NAMES:
        return False
    if extension and extension.lower() in DANGEROUS_EXTENSIONS:
        return False
    return unicodedata.normalize("NFC", name) == name


def create_safe_file_name(schema: str, name: str, extension: str = ".json") -> str:
    """Build `<schema>.<name><extension>` from sanitized parts, capped at 255 characters."""

    if not extension or not extension.strip():
        raise ModelValidationError("Extension must not be empty", param="extension")
    safe_schema = sanitize_entity_name(schema)
    safe_name = sanitize_entity_name(name)
    if not extension.startswith("."):
        extension = f".{extension}"

    file_name = f"{safe_schema}.{safe_name}{extension}"
    if len(file_name) > MAX_FILE_NAME_LENGTH:
        half = (MAX_FILE_NAME_LENGTH - len(extension) - 1) // 2
        file_name = f"{safe_schema[:half]}.{safe_name[:half]}{extension}"
    return file_name


def validate_input_security(text: str | None, field_name: str) -> None:
    """
    Reject `text` when it carries injection payloads, floods any single character more
    than 100 times, or contains binary/control bytes (tab, CR and LF are allowed).
    """

    if text is None or not text.strip():
        raise ModelValidationError(f"Input must not be empty: {field_name}", param=field_name)

    for pattern in _INJECTION_PATTERNS:
        if pattern.search(text):
            raise ModelValidationError(
                f"Input contains potentially dangerous content: {field_name}", param=field_name
            )

    if _has_excessive_repetition(text):
        raise ModelValidationError(
            f"Input contains excessive character repetition: {field_name}", param=field_name
        )

    if any(ord(ch) < 32 and ch not in "\t\n\r" for ch in text):
        raise ModelValidationError(f"Input contains binary content: {field_name}", param=field_name)


def _has_excessive_repetition(text: str) -> bool:
    # Counts total occurrences per character, not consecutive runs.
    return any(count > MAX_CHARACTER_REPETITION for count in Counter(text).values())


# --- Module Notes -----------------------------------------------------------
# These are pure functions: strategies and the repository call them before touching
# the filesystem or building a backend key.
