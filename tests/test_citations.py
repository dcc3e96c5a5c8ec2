"""Tests for clause and schedule citation lookup."""

from pathlib import Path

import pytest

from agreement_gateway.citations import SourceDocument, load_source_document

from conftest import MANIFEST


@pytest.fixture()
def source(tmp_path: Path) -> SourceDocument:
    path = tmp_path / "source.yaml"
    path.write_text(MANIFEST)
    return load_source_document(path)


def test_manifest_loaded(source: SourceDocument) -> None:
    assert source.title == "Test Agreement 2025"
    assert source.clause_pages["12"] == 10
    assert source.schedule_pages == {"1": 74}


def test_clause_and_schedule_references(source: SourceDocument) -> None:
    citations = source.find_citations(
        "Under **Clause 26** and Schedule 1 you are entitled to leave."
    )
    assert [(c.text, c.page) for c in citations] == [
        ("Clause 26", 27),
        ("Schedule 1", 74),
    ]
    assert citations[0].url == "https://example.com/agreement.pdf#page=27"


def test_sub_clause_uses_parent_page(source: SourceDocument) -> None:
    citations = source.find_citations("See Clause 12.2(a)(ii) for details.")
    assert len(citations) == 1
    assert citations[0].text == "Clause 12.2(a)(ii)"
    assert citations[0].page == 10


def test_duplicates_and_unknown_numbers_skipped(source: SourceDocument) -> None:
    citations = source.find_citations(
        "Clause 1 applies. Clause 1 again. Clause 99 is not mapped. Schedule 9 neither."
    )
    assert [c.text for c in citations] == ["Clause 1"]


def test_no_references(source: SourceDocument) -> None:
    assert source.find_citations("No references here.") == []


def test_bundled_manifest_loads() -> None:
    root = Path(__file__).resolve().parent.parent
    source = load_source_document(root / "config" / "source_document.yaml")
    assert source.clause_pages["95"] == 73
    assert source.schedule_pages["7"] == 102


def test_missing_manifest(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_source_document(tmp_path / "missing.yaml")


def test_manifest_not_a_mapping(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- one\n- two\n")
    with pytest.raises(ValueError, match="mapping"):
        load_source_document(path)


def test_manifest_requires_pdf_url(tmp_path: Path) -> None:
    path = tmp_path / "nourl.yaml"
    path.write_text("title: Something\n")
    with pytest.raises(ValueError, match="pdf_url"):
        load_source_document(path)
