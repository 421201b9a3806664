"""Per-page text and page-number candidate extraction."""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Protocol, Sequence, Tuple

from ..models import PageRecord, TextFragment
from .context import RunContext
from .page_numbers import detect_page_number

# Fragments whose vertical positions round to the same multiple of this
# value are treated as one visual line.
LINE_BUCKET = 3
EDGE_LINES = 2


class PageTextSource(Protocol):
    """Anything that can list positioned text fragments page by page."""

    @property
    def page_count(self) -> int: ...

    def fragments(self, index: int) -> List[TextFragment]: ...

    def close(self) -> None: ...


class MemoryTextSource:
    """Page source backed by in-memory fragments (tests, fixtures, JSON dumps)."""

    def __init__(self, pages: Sequence[Iterable[TextFragment]]) -> None:
        self._pages = [list(page) for page in pages]

    @classmethod
    def from_lines(cls, pages: Sequence[Sequence[Tuple[str, float]]]) -> "MemoryTextSource":
        return cls(
            [[TextFragment(text=text, y=float(y)) for text, y in page] for page in pages]
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "MemoryTextSource":
        pages: List[List[TextFragment]] = []
        for page in payload.get("pages") or []:  # type: ignore[union-attr]
            fragments = []
            for item in page.get("fragments") or []:
                fragments.append(
                    TextFragment(text=str(item.get("text", "")), y=float(item.get("y", 0.0)))
                )
            pages.append(fragments)
        return cls(pages)

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def fragments(self, index: int) -> List[TextFragment]:
        return list(self._pages[index])

    def close(self) -> None:
        return None


def line_key(y: float) -> int:
    """Round ``y`` half-up to the nearest multiple of :data:`LINE_BUCKET`."""

    return int(math.floor(y / LINE_BUCKET + 0.5)) * LINE_BUCKET


def group_into_lines(fragments: Iterable[TextFragment]) -> List[str]:
    """Return visual lines ordered from the top of the page to the bottom."""

    buckets: Dict[int, List[str]] = {}
    for fragment in fragments:
        text = (fragment.text or "").strip()
        if not text:
            continue
        buckets.setdefault(line_key(fragment.y), []).append(text)
    return [" ".join(buckets[key]).strip() for key in sorted(buckets, reverse=True)]


def edge_lines(lines: Sequence[str]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Split ``lines`` into (top lines, bottom lines), outermost line first."""

    if not lines:
        return (), ()
    top = tuple(lines[:EDGE_LINES])
    bottom = tuple(reversed(lines[-EDGE_LINES:]))
    return top, bottom


def build_page_record(index: int, fragments: Sequence[TextFragment]) -> PageRecord:
    text = " ".join(fragment.text for fragment in fragments)
    top, bottom = edge_lines(group_into_lines(fragments))
    return PageRecord(
        index=index,
        text=text,
        candidate_top=detect_page_number(top),
        candidate_bottom=detect_page_number(bottom),
        top_lines=top,
        bottom_lines=bottom,
    )


def extract_page_records(
    context: RunContext, progress_every: int = 50
) -> List[PageRecord]:
    """Read every page of ``context.source`` in order.

    The cancellation token is polled before each page; a set token aborts
    the whole extraction with :class:`~toclink.utils.errors.Cancelled`.
    """

    source = context.source
    if source is None:
        raise ValueError("RunContext.source is required for page extraction")

    total = source.page_count
    records: List[PageRecord] = []
    for index in range(total):
        context.check()
        page_number = index + 1
        if page_number == 1 or (progress_every and page_number % progress_every == 0):
            context.report("  Scanning page %d/%d...", page_number, total)
        records.append(build_page_record(index, source.fragments(index)))
    return records


__all__ = [
    "EDGE_LINES",
    "LINE_BUCKET",
    "MemoryTextSource",
    "PageTextSource",
    "build_page_record",
    "edge_lines",
    "extract_page_records",
    "group_into_lines",
    "line_key",
]
