"""High level table-of-contents import: acquire entries, map pages, resolve."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..config import Settings, get_settings
from ..models import Confidence, PrintedPageMap, RawEntry, ResolvedEntry, pair_results
from ..utils.errors import ValidationError
from ..utils.trace import ImportTracer
from .context import ProgressSink, RunContext
from .entries import parse_entries_payload, parse_llm_response
from .gap_inference import (
    OffsetEstimate,
    detect_printed_page_offset,
    fill_page_map,
    harvest_page_labels,
)
from .hierarchy import normalize_hierarchy
from .llm import build_messages, stream_chat
from .page_data import PageTextSource, extract_page_records
from .page_map import build_page_number_map, chosen_sequence
from .resolver import resolve_entries

LOGGER = logging.getLogger(__name__)


@dataclass
class ImportResult:
    entries: List[ResolvedEntry]
    page_map: PrintedPageMap
    page_count: int
    offset_estimate: Optional[OffsetEstimate] = None

    def counts(self) -> Dict[str, int]:
        counts = {confidence.value: 0 for confidence in Confidence}
        for resolved in self.entries:
            counts[resolved.match.confidence.value] += 1
        return counts

    def outline(self) -> List[Dict[str, Any]]:
        return [resolved.to_dict() for resolved in self.entries]

    def summary(self) -> str:
        counts = self.counts()
        return (
            f"Imported {len(self.entries)} entries: "
            f"{counts[Confidence.VERIFIED.value]} verified, "
            f"{counts[Confidence.UNCERTAIN.value]} uncertain, "
            f"{counts[Confidence.UNVERIFIED.value]} not found."
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "summary": self.summary(),
            "counts": self.counts(),
            "page_count": self.page_count,
            "page_map": self.page_map.to_dict(),
            "outline": self.outline(),
        }
        if self.offset_estimate is not None:
            payload["offset_estimate"] = {
                "offset": self.offset_estimate.offset,
                "votes": self.offset_estimate.votes,
            }
        return payload


def new_run_context(
    source: Optional[PageTextSource],
    settings: Optional[Settings] = None,
    progress: Optional[ProgressSink] = None,
) -> RunContext:
    """Fresh context for one run, traced when tracing is enabled."""

    settings = settings or get_settings()
    tracer = ImportTracer(out_dir=settings.trace_dir) if settings.trace_enabled else None
    return RunContext(source=source, progress=progress, tracer=tracer)


def load_entries(payload: Any) -> List[RawEntry]:
    """Entries from a JSON payload with their levels repaired."""

    entries = normalize_hierarchy(parse_entries_payload(payload))
    LOGGER.info("Loaded %d entries from JSON.", len(entries))
    return entries


def _page_text(source: PageTextSource, index: int) -> str:
    return " ".join(fragment.text for fragment in source.fragments(index))


def extract_toc_source_text(
    source: PageTextSource,
    pages: Optional[Sequence[int]] = None,
    context: Optional[RunContext] = None,
    min_chars_per_page: int = 50,
) -> str:
    """Text of the given 1-based pages (all pages when omitted) for the LLM.

    Each page becomes a ``--- Page N ---`` block. Pages that hold almost no
    text are image based and rejected with ``low_text_density``.
    """

    context = context or RunContext(source=source)
    selected = list(pages) if pages else list(range(1, source.page_count + 1))
    if not selected:
        raise ValidationError("Document has no pages", code="empty_document")

    blocks: List[str] = []
    characters = 0
    for page in selected:
        context.check()
        text = _page_text(source, page - 1)
        characters += sum(1 for ch in text if not ch.isspace())
        blocks.append(f"--- Page {page} ---\n{text}")

    if characters < len(selected) * min_chars_per_page:
        raise ValidationError(
            "Low text density detected; the pages look image based",
            code="low_text_density",
            extra={"pages": selected, "characters": characters},
        )
    context.report("Extracted %d page(s) as text.", len(selected))
    return "\n\n".join(blocks)


def external_toc_text(text: str) -> str:
    """Text of a standalone TOC file (``.txt`` or ``.md``), ready for the LLM."""

    text = text.replace("\r\n", "\n").strip()
    if not text:
        raise ValidationError("TOC text file is empty", code="empty_text")
    return text


def extract_entries_with_llm(
    settings: Settings, text: str, context: Optional[RunContext] = None
) -> List[RawEntry]:
    """Ask the configured model for the entries in ``text``."""

    context = context or RunContext()
    context.check()
    response = stream_chat(settings, build_messages(text), cancel=context.cancel)
    context.check()
    entries = normalize_hierarchy(parse_llm_response(response))
    context.report("Parsed %d entries from the model response.", len(entries))
    return entries


def resolve_document(
    entries: Sequence[RawEntry],
    context: RunContext,
    settings: Optional[Settings] = None,
) -> ImportResult:
    """Resolve ``entries`` against the document in ``context.source``."""

    settings = settings or get_settings()
    if not entries:
        raise ValidationError("No TOC entries to import", code="no_entries")
    source = context.source
    if source is None or source.page_count == 0:
        raise ValidationError("Document has no pages", code="empty_document")

    entries = list(entries)
    started = time.perf_counter()
    context.trace("start_run", entries=len(entries), page_count=source.page_count)
    context.report("Building page mapping (%d pages)...", source.page_count)
    records = extract_page_records(context, progress_every=settings.progress_every)

    page_map = build_page_number_map(records)
    if settings.gap_inference:
        fill_page_map(page_map, chosen_sequence(records, page_map.position))
    context.report(
        "Mapped %d printed pages (%d inferred).", len(page_map), len(page_map.inferred)
    )
    context.trace("page_map_built", **page_map.to_dict())

    offset = detect_printed_page_offset(
        entries, [harvest_page_labels(record) for record in records]
    )
    if offset is not None:
        LOGGER.debug("Global offset estimate %+d (%d votes)", offset.offset, offset.votes)

    results = resolve_entries(
        entries,
        [record.text for record in records],
        page_map,
        context,
        verify_radius=settings.verify_radius,
    )
    result = ImportResult(
        entries=pair_results(entries, results),
        page_map=page_map,
        page_count=len(records),
        offset_estimate=offset,
    )
    context.trace(
        "end_run", elapsed_s=round(time.perf_counter() - started, 3), **result.counts()
    )
    if context.tracer is not None:
        context.tracer.flush_jsonl()
    context.report(result.summary())
    return result


__all__ = [
    "ImportResult",
    "extract_entries_with_llm",
    "extract_toc_source_text",
    "external_toc_text",
    "load_entries",
    "new_run_context",
    "resolve_document",
]
