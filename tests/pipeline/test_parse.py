"""Tests for parsing buffers."""

from pathlib import Path

import pytest

from treelens.pipeline.parse import detect_language, parse_file, parse_source

FIXTURES = Path(__file__).parent.parent / "fixtures"


@pytest.mark.parametrize(
    "name,expected",
    [("a.py", "python"), ("a.PYI", "python"), ("a.sol", "solidity"), ("a.txt", None)],
)
def test_detect_language(name, expected):
    assert detect_language(Path(name)) == expected


def test_parse_file_detects_language():
    parsed = parse_file(FIXTURES / "ledger.py")
    assert parsed.language == "python"
    assert parsed.root_node.type == "module"
    assert parsed.source.startswith(b"import os")


def test_parse_file_with_explicit_language(tmp_path):
    path = tmp_path / "script"
    path.write_text("x = 1\n")
    assert parse_file(path, "python").root_node.type == "module"


def test_parse_file_unknown_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    with pytest.raises(ValueError, match="Cannot detect language"):
        parse_file(path)


def test_parse_file_missing(tmp_path):
    with pytest.raises(ValueError, match="Failed to read file"):
        parse_file(tmp_path / "missing.py")


def test_parse_source_accepts_text():
    parsed = parse_source("x = 1\n", "python")
    assert parsed.source == b"x = 1\n"
    assert parsed.path == Path("<python buffer>")


def test_parse_source_with_errors_still_returns_tree(caplog):
    parsed = parse_source(b"def (:\n", "python", Path("broken.py"))
    assert parsed.root_node.has_error
    assert "Parse tree contains errors for broken.py" in caplog.text


def test_parse_source_unknown_grammar():
    with pytest.raises(RuntimeError, match="Failed to get parser"):
        parse_source(b"", "no-such-grammar")
