"""Value objects flowing through the table-of-contents import pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RawEntry:
    """A table-of-contents entry as supplied by the LLM, a JSON file or a user."""

    title: str
    page: int = 0
    level: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "page": self.page, "level": self.level}


@dataclass(frozen=True)
class TextFragment:
    """A run of text with its vertical position measured up from the page bottom."""

    text: str
    y: float


@dataclass(frozen=True)
class PageRecord:
    """Per-page text and printed page-number candidates, 0-indexed."""

    index: int
    text: str
    candidate_top: Optional[int] = None
    candidate_bottom: Optional[int] = None
    top_lines: Tuple[str, ...] = ()
    bottom_lines: Tuple[str, ...] = ()


@dataclass
class PrintedPageMap:
    """Bidirectional map between printed page numbers and physical indices."""

    printed_to_physical: Dict[int, int] = field(default_factory=dict)
    physical_to_printed: Dict[int, int] = field(default_factory=dict)
    position: str = "top"
    top_score: int = 0
    bottom_score: int = 0
    inferred: set[int] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.printed_to_physical)

    def lookup(self, printed: int) -> Optional[int]:
        if printed <= 0:
            return None
        return self.printed_to_physical.get(printed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "top_score": self.top_score,
            "bottom_score": self.bottom_score,
            "mapped": len(self.printed_to_physical),
            "inferred": sorted(self.inferred),
            "physical_to_printed": {
                str(index): printed
                for index, printed in sorted(self.physical_to_printed.items())
            },
        }


class Confidence(str, Enum):
    VERIFIED = "verified"
    UNCERTAIN = "uncertain"
    UNVERIFIED = "unverified"


@dataclass(frozen=True)
class MatchResult:
    page_index: int
    confidence: Confidence


@dataclass(frozen=True)
class ResolvedEntry:
    """A raw entry together with the physical page it resolved to."""

    entry: RawEntry
    match: MatchResult

    @property
    def marker(self) -> Optional[str]:
        if self.match.confidence is Confidence.VERIFIED:
            return None
        return self.match.confidence.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.entry.title,
            "level": self.entry.level,
            "page": self.entry.page,
            "page_index": self.match.page_index,
            "confidence": self.match.confidence.value,
            "marker": self.marker,
        }


def pair_results(
    entries: List[RawEntry], results: List[MatchResult]
) -> List[ResolvedEntry]:
    if len(entries) != len(results):
        raise ValueError("entries and results must have the same length")
    return [ResolvedEntry(entry, match) for entry, match in zip(entries, results)]


__all__ = [
    "Confidence",
    "MatchResult",
    "PageRecord",
    "PrintedPageMap",
    "RawEntry",
    "ResolvedEntry",
    "TextFragment",
    "pair_results",
]
