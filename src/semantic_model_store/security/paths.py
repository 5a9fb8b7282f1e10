"""
semantic_model_store.security.paths

Path validation helpers.

Responsibilities:
- Reject traversal, device names, control characters and over-long paths.
- Normalize Unicode and resolve to an absolute path.
- Check containment of one path inside another.
"""

from __future__ import annotations

import os
import re
import unicodedata
from urllib.parse import unquote

from semantic_model_store.errors import ModelValidationError

RESERVED_DEVICE_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

MAX_PATH_LENGTH = 260
MAX_PATH_LENGTH_EXTENDED = 32767
MAX_SEGMENT_LENGTH = 255

_DANGEROUS_SEGMENTS = ("..", "~")
_INVALID_PATH_CHARS = frozenset('<>"|?*')
_SEPARATORS = re.compile(r"[\\/]")


def validate_and_sanitize_path(path: str | os.PathLike[str] | None, allow_extended: bool = False) -> str:
    """
    Validate `path` and return its normalized absolute form.

    Raises `ModelValidationError(param="path")` when the path is empty, relative, too
    long, contains traversal markers (plain or percent-encoded), forbidden characters,
    or ends in a reserved device name.
    """

    if path is None:
        raise ModelValidationError("Path must not be empty", param="path")
    raw = os.fspath(path)
    if not raw.strip():
        raise ModelValidationError("Path must not be empty", param="path")

    normalized = raw.replace("/", os.sep) if os.sep != "/" else raw

    _check_length(normalized, allow_extended)
    _check_dangerous_segments(normalized)
    _check_characters(normalized)
    _check_reserved_name(normalized)

    normalized = unicodedata.normalize("NFC", normalized)

    if not os.path.isabs(normalized):
        raise ModelValidationError(f"Path must be an absolute path: {raw}", param="path")

    return os.path.abspath(normalized)


def is_path_within_directory(parent: str | os.PathLike[str], child: str | os.PathLike[str]) -> bool:
    """True iff the resolved `child` equals or lies below the resolved `parent`."""

    parent_raw = os.fspath(parent) if parent is not None else ""
    child_raw = os.fspath(child) if child is not None else ""
    if not parent_raw.strip():
        raise ModelValidationError("Parent path must not be empty", param="parent")
    if not child_raw.strip():
        raise ModelValidationError("Child path must not be empty", param="child")

    try:
        # realpath follows symlinks, so a link pointing outside the parent is rejected.
        resolved_parent = os.path.normcase(os.path.realpath(parent_raw)).rstrip(os.sep)
        resolved_child = os.path.normcase(os.path.realpath(child_raw)).rstrip(os.sep)
    except (OSError, ValueError):
        return False

    if resolved_child == resolved_parent:
        return True
    return resolved_child.startswith(resolved_parent + os.sep)


def _segments(path: str) -> list[str]:
    return [s for s in _SEPARATORS.split(path) if s]


def _check_length(path: str, allow_extended: bool) -> None:
    max_length = MAX_PATH_LENGTH_EXTENDED if allow_extended else MAX_PATH_LENGTH
    if len(path) > max_length:
        raise ModelValidationError(
            f"Path exceeds maximum length of {max_length} characters", param="path"
        )
    for segment in _segments(path):
        if len(segment) > MAX_SEGMENT_LENGTH:
            raise ModelValidationError(
                f"Path segment exceeds maximum length of {MAX_SEGMENT_LENGTH} characters: {segment}",
                param="path",
            )


def _check_dangerous_segments(path: str) -> None:
    for marker in _DANGEROUS_SEGMENTS:
        if marker in path:
            raise ModelValidationError(
                f"Path contains dangerous segment '{marker}': {path}", param="path"
            )

    decoded = unquote(path)
    if decoded != path:
        for marker in _DANGEROUS_SEGMENTS:
            if marker in decoded:
                raise ModelValidationError(
                    f"Path contains encoded dangerous segment '{marker}': {path}", param="path"
                )


def _check_characters(path: str) -> None:
    for i, ch in enumerate(path):
        if ch in _INVALID_PATH_CHARS or ord(ch) < 32:
            raise ModelValidationError(f"Path contains invalid characters: {path!r}", param="path")
        # Colon is only legal as a drive separator ("C:").
        if ch == ":" and i != 1:
            raise ModelValidationError(f"Path contains invalid characters: {path!r}", param="path")


def _check_reserved_name(path: str) -> None:
    segments = _segments(path)
    if not segments:
        return
    stem = os.path.splitext(segments[-1])[0].upper()
    if stem in RESERVED_DEVICE_NAMES:
        raise ModelValidationError(
            f"Path contains reserved device name '{stem}': {path}", param="path"
        )


# --- Module Notes -----------------------------------------------------------
# Validation is purely lexical except for `is_path_within_directory`, which resolves
# symlinks. The repository keys its per-path locks on the value returned here.
