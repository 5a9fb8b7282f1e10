"""
tests.test_security

Path and entity-name validators.

Responsibilities:
- Reject traversal, device names, forbidden characters and injection payloads.
- Accept and normalize well-formed absolute paths and names.
"""

from __future__ import annotations

import os
import unicodedata

import pytest

from semantic_model_store.errors import ModelValidationError
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


def test_valid_absolute_path_is_returned_resolved(tmp_path) -> None:
    target = tmp_path / "models" / "sales"
    assert validate_and_sanitize_path(str(target)) == os.path.abspath(str(target))


def test_path_is_normalized_to_composed_form(tmp_path) -> None:
    decomposed = f"{tmp_path}/cafe\u0301"
    result = validate_and_sanitize_path(decomposed)
    assert result.endswith("caf\u00e9")
    assert unicodedata.is_normalized("NFC", result)


@pytest.mark.parametrize("path", ["", "   ", None])
def test_empty_path_rejected(path) -> None:
    with pytest.raises(ModelValidationError) as exc:
        validate_and_sanitize_path(path)
    assert exc.value.param == "path"


def test_relative_path_rejected() -> None:
    with pytest.raises(ModelValidationError, match="absolute"):
        validate_and_sanitize_path("models/sales")


@pytest.mark.parametrize(
    "suffix",
    ["../etc/passwd", "a/../b", "~/models", "%2e%2e/secret", "model%7E"],
)
def test_traversal_markers_rejected(tmp_path, suffix: str) -> None:
    with pytest.raises(ModelValidationError, match="dangerous segment"):
        validate_and_sanitize_path(f"{tmp_path}/{suffix}")


@pytest.mark.parametrize("ch", ["<", ">", '"', "|", "?", "*", "\x01"])
def test_forbidden_characters_rejected(tmp_path, ch: str) -> None:
    with pytest.raises(ModelValidationError, match="invalid characters"):
        validate_and_sanitize_path(f"{tmp_path}/bad{ch}name")


def test_colon_outside_drive_position_rejected(tmp_path) -> None:
    with pytest.raises(ModelValidationError, match="invalid characters"):
        validate_and_sanitize_path(f"{tmp_path}/a:b")


@pytest.mark.parametrize("name", ["CON", "nul.json", "COM1", "lpt9.txt"])
def test_reserved_device_name_in_last_segment_rejected(tmp_path, name: str) -> None:
    with pytest.raises(ModelValidationError, match="reserved device name"):
        validate_and_sanitize_path(f"{tmp_path}/{name}")


def test_reserved_name_in_parent_segment_is_allowed(tmp_path) -> None:
    assert validate_and_sanitize_path(f"{tmp_path}/CON/model").endswith("model")


def test_length_limits(tmp_path) -> None:
    with pytest.raises(ModelValidationError, match="maximum length of 260"):
        validate_and_sanitize_path("/" + "/".join(["a" * 50] * 6))
    with pytest.raises(ModelValidationError, match="segment exceeds"):
        validate_and_sanitize_path("/" + "a" * 256, allow_extended=True)
    long_path = "/" + "/".join(["a" * 200] * 3)
    assert validate_and_sanitize_path(long_path, allow_extended=True) == os.path.abspath(long_path)


def test_is_path_within_directory(tmp_path) -> None:
    parent = tmp_path / "root"
    (parent / "child").mkdir(parents=True)
    assert is_path_within_directory(str(parent), str(parent))
    assert is_path_within_directory(str(parent), str(parent / "child" / "file.json"))
    assert not is_path_within_directory(str(parent), str(tmp_path / "rootsibling"))
    assert not is_path_within_directory(str(parent), str(tmp_path))


def test_is_path_within_directory_follows_symlinks(tmp_path) -> None:
    parent = tmp_path / "root"
    outside = tmp_path / "outside"
    parent.mkdir()
    outside.mkdir()
    (parent / "link").symlink_to(outside, target_is_directory=True)
    assert not is_path_within_directory(str(parent), str(parent / "link" / "x.json"))


def test_sanitize_entity_name_replaces_invalid_characters() -> None:
    assert sanitize_entity_name("Order/Details:2024") == "Order_Details_2024"
    assert sanitize_entity_name("  .Customer.  ") == "Customer"
    assert sanitize_entity_name("Tab\u200bName") == "Tab_Name"
    assert sanitize_entity_name("Tab\u200bName", strict=False) == "Tab\u200bName"


def test_sanitize_entity_name_prefixes_reserved_names() -> None:
    assert sanitize_entity_name("CON") == "_CON"
    assert sanitize_entity_name("aux.json") == "_aux.json"


@pytest.mark.parametrize("name", ["", "   ", "...", "x" * 129])
def test_sanitize_entity_name_rejects_unusable_input(name: str) -> None:
    with pytest.raises(ModelValidationError):
        sanitize_entity_name(name)


@pytest.mark.parametrize("name", ["payload.exe", "script.PS1", "lib.dll"])
def test_sanitize_entity_name_rejects_executable_extensions(name: str) -> None:
    with pytest.raises(ModelValidationError, match="dangerous file extension"):
        sanitize_entity_name(name)


def test_is_valid_entity_name() -> None:
    assert is_valid_entity_name("Customer")
    assert is_valid_entity_name("Sales_2024")
    assert not is_valid_entity_name("bad/name")
    assert not is_valid_entity_name(" padded ")
    assert not is_valid_entity_name("PRN")
    assert not is_valid_entity_name(None)


def test_create_safe_file_name() -> None:
    assert create_safe_file_name("dbo", "Customer") == "dbo.Customer.json"
    assert create_safe_file_name("sales", "Order:Lines", "yaml") == "sales.Order_Lines.yaml"
    long_name = create_safe_file_name("s" * 128, "n" * 128)
    assert len(long_name) <= 255
    assert long_name.endswith(".json")


@pytest.mark.parametrize(
    "text",
    [
        "<script>alert(1)</script>",
        "javascript:void(0)",
        "hello ${jndi:ldap://x}",
        "{{ config }}",
        "<% exec %>",
        "img onerror = boom",
    ],
)
def test_validate_input_security_rejects_injection(text: str) -> None:
    with pytest.raises(ModelValidationError, match="dangerous content") as exc:
        validate_input_security(text, "Description")
    assert exc.value.param == "Description"


def test_validate_input_security_rejects_repetition_and_binary() -> None:
    with pytest.raises(ModelValidationError, match="repetition"):
        validate_input_security("a" * 101, "Name")
    with pytest.raises(ModelValidationError, match="binary"):
        validate_input_security("abc\x00def", "Name")


def test_validate_input_security_accepts_plain_text() -> None:
    validate_input_security("Customer master data\twith tabs\nand newlines", "Description")
    validate_input_security("a" * 100, "Name")


# --- Module Notes -----------------------------------------------------------
# Windows-only behaviors (drive letters, backslash separators) are covered by the
# lexical checks above; the suite itself runs on POSIX paths.
