from __future__ import annotations

import pytest

from docvault.core.errors import InvalidContentType, InvalidFilename, InvalidInput
from docvault.utils.files import (
    MAX_FILENAME_LENGTH,
    normalize_content_type,
    sanitize_filename,
    validate_content_type,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("report.pdf", "report.pdf"),
        ("../../../etc/passwd", "passwd"),
        ("/absolute/path/file.txt", "file.txt"),
        ("C:\\Users\\me\\report.pdf", "report.pdf"),
        ("dir/sub\\mixed.md", "mixed.md"),
        ("  spaced name.txt  ", "spaced name.txt"),
        ("nul\x00byte.txt", "nulbyte.txt"),
        ("trailing/slash/", "slash"),
    ],
)
def test_sanitize_filename(raw: str, expected: str) -> None:
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", ".", "..", "../..", "/", "\\", "\x00"])
def test_sanitize_filename_rejects_empty_and_dots(raw: str | None) -> None:
    with pytest.raises(InvalidFilename):
        sanitize_filename(raw)


def test_sanitized_name_never_contains_separators() -> None:
    result = sanitize_filename("a/b\\c/../d\\..\\evil.sh")
    assert "/" not in result
    assert "\\" not in result
    assert result not in ("", ".", "..")


def test_long_names_keep_extension() -> None:
    result = sanitize_filename("x" * 400 + ".pdf")
    assert len(result) == MAX_FILENAME_LENGTH
    assert result.endswith(".pdf")


def test_invalid_filename_is_invalid_input() -> None:
    assert issubclass(InvalidFilename, InvalidInput)


@pytest.mark.parametrize(
    "content_type",
    ["application/pdf", "text/plain", "TEXT/PLAIN", "text/plain; charset=utf-8", "image/png"],
)
def test_allowed_content_types(content_type: str) -> None:
    assert validate_content_type(content_type) == normalize_content_type(content_type)


@pytest.mark.parametrize(
    "content_type",
    [None, "", "application/x-msdownload", "application/octet-stream", "text/html"],
)
def test_disallowed_content_types(content_type: str | None) -> None:
    with pytest.raises(InvalidContentType):
        validate_content_type(content_type)


def test_normalize_content_type_strips_parameters() -> None:
    assert normalize_content_type("Text/Markdown ; charset=UTF-8") == "text/markdown"
    assert normalize_content_type(None) == ""
