"""Tests for system prompt assembly and history trimming."""

from pathlib import Path

import pytest

from agreement_gateway.prompt import build_system_prompt, load_document, trim_history


def test_document_embedded_after_instructions() -> None:
    prompt = build_system_prompt("1. Title {not a placeholder}", "Test Agreement")
    assert "Test Agreement Assistant" in prompt
    assert prompt.endswith("1. Title {not a placeholder}")
    assert prompt.index("Clause X") < prompt.index("1. Title")


def test_load_document(tmp_path: Path) -> None:
    path = tmp_path / "doc.txt"
    path.write_text("Clause 1 – Title", encoding="utf-8")
    assert load_document(path) == "Clause 1 – Title"


def test_load_document_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_document(tmp_path / "missing.txt")


def test_load_document_empty(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("  \n")
    with pytest.raises(ValueError, match="empty"):
        load_document(path)


def test_trim_history_keeps_most_recent() -> None:
    assert trim_history(list(range(15)), 10) == list(range(5, 15))


def test_trim_history_shorter_than_limit() -> None:
    assert trim_history([1, 2], 10) == [1, 2]


def test_trim_history_zero_limit() -> None:
    assert trim_history([1, 2], 0) == []
