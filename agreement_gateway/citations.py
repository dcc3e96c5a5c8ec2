"""Clause and schedule citations for model answers.

Maps "Clause N" and "Schedule N" references in an answer to the page of the
published PDF where that clause or schedule starts. The page tables and PDF
location come from a YAML manifest that ships alongside the document text.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from agreement_gateway.models import Citation

_REFERENCE_PATTERN = re.compile(
    r"Clause\s+(\d+)(?:\.\d+)?(?:\([a-z0-9]+\))*|Schedule\s+(\d+)"
)


@dataclass
class SourceDocument:
    """The published document the answers are grounded in."""

    title: str
    pdf_url: str
    clause_pages: Dict[str, int] = field(default_factory=dict)
    schedule_pages: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceDocument":
        """Create a SourceDocument from a dictionary (YAML-parsed)."""
        if not data.get("pdf_url"):
            raise ValueError("Source manifest must define 'pdf_url'")

        return cls(
            title=data.get("title", "Agreement"),
            pdf_url=data["pdf_url"],
            clause_pages=_page_table(data.get("clause_pages", {}), "clause_pages"),
            schedule_pages=_page_table(
                data.get("schedule_pages", {}), "schedule_pages"
            ),
        )

    def page_for(self, clause: Optional[str], schedule: Optional[str]) -> Optional[int]:
        if clause is not None:
            return self.clause_pages.get(clause)
        if schedule is not None:
            return self.schedule_pages.get(schedule)
        return None

    def page_url(self, page: int) -> str:
        return "{}#page={}".format(self.pdf_url, page)

    def find_citations(self, text: str) -> List[Citation]:
        """Return one Citation per distinct reference with a known page.

        Sub-clause references such as "Clause 12.2(a)" resolve to the page
        of their parent clause. References to unknown numbers are skipped.
        """
        citations: List[Citation] = []
        seen = set()

        for match in _REFERENCE_PATTERN.finditer(text):
            ref = match.group(0)
            if ref in seen:
                continue

            page = self.page_for(match.group(1), match.group(2))
            if page is None:
                continue

            seen.add(ref)
            citations.append(Citation(text=ref, page=page, url=self.page_url(page)))

        return citations


def _page_table(raw: Any, name: str) -> Dict[str, int]:
    if not isinstance(raw, dict):
        raise ValueError("'{}' must be a mapping of number to page".format(name))
    return {str(number): int(page) for number, page in raw.items()}


def load_source_document(path: Union[str, Path]) -> SourceDocument:
    """Load the source document manifest from a YAML file.

    Args:
        path: Path to the YAML manifest.

    Returns:
        A SourceDocument with its page tables.

    Raises:
        FileNotFoundError: If the manifest does not exist.
        ValueError: If the YAML is not a mapping or is missing fields.
    """
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise FileNotFoundError("Source manifest not found: {}".format(path))

    with open(manifest_path, "r") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError("Source manifest must contain a YAML mapping at the top level")

    return SourceDocument.from_dict(raw)
