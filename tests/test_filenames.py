"""Tests for stored-name generation and checks."""

import re

import pytest

from docstore.utils.filenames import StoredNames


@pytest.mark.parametrize(
    "original, expected",
    [
        ("report.pdf", "report.pdf"),
        ("my report (final).pdf", "my_report__final_.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\scan.pdf", "scan.pdf"),
        ("...hidden.pdf", "hidden.pdf"),
        ("a..b.pdf", "a.b.pdf"),
        ("", "document"),
        ("..", "document"),
    ],
)
def test_sanitize(original, expected):
    assert StoredNames.sanitize(original) == expected


def test_sanitize_truncates_but_keeps_extension():
    safe = StoredNames.sanitize("x" * 300 + ".pdf")

    assert len(safe) == StoredNames.MAX_SUFFIX_LENGTH
    assert safe.endswith(".pdf")


def test_generate_is_unique_and_safe():
    names = {StoredNames.generate("report.pdf") for _ in range(200)}

    assert len(names) == 200
    for name in names:
        assert re.fullmatch(r"\d+_[0-9a-f]{8}_report\.pdf", name)
        assert StoredNames.is_safe(name)


@pytest.mark.parametrize("name", ["", ".env", "../x", "a/b", "a\\b", "/abs", "nul\x00byte"])
def test_is_safe_rejects(name):
    assert not StoredNames.is_safe(name)


def test_has_allowed_extension():
    assert StoredNames.has_allowed_extension("Report.PDF", [".pdf"])
    assert not StoredNames.has_allowed_extension("report.pdf.exe", [".pdf"])
    assert StoredNames.has_allowed_extension("anything.bin", [])
