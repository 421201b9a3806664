"""Resolve table-of-contents entries to physical pages in two passes.

Pass 1 trusts the printed page number: the entry is looked up in the
printed-page map and its title is verified on the mapped page or within
``verify_radius`` pages of it. Pass 2 handles whatever is left by searching
for the title between the pages of the nearest already-resolved neighbours.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..models import Confidence, MatchResult, PrintedPageMap, RawEntry
from .context import RunContext
from .title_match import (
    PreparedPage,
    TitlePattern,
    find_title_near,
    prepare_page,
    search_title_in_range,
)

LOGGER = logging.getLogger(__name__)

VERIFY_RADIUS = 2


def _neighbour_bounds(
    results: Sequence[Optional[MatchResult]], position: int, page_count: int
) -> tuple[int, int]:
    lower = 0
    upper = page_count - 1
    for earlier in reversed(results[:position]):
        if earlier is not None:
            lower = earlier.page_index
            break
    for later in results[position + 1 :]:
        if later is not None:
            upper = later.page_index
            break
    return lower, upper


def _trace_result(
    context: RunContext, position: int, entry: RawEntry, result: MatchResult, stage: str
) -> None:
    context.trace(
        "entry_resolved",
        position=position,
        title=entry.title,
        printed=entry.page,
        page_index=result.page_index,
        confidence=result.confidence.value,
        stage=stage,
    )


def resolve_entries(
    entries: Sequence[RawEntry],
    page_texts: Sequence[str],
    page_map: PrintedPageMap,
    context: Optional[RunContext] = None,
    verify_radius: int = VERIFY_RADIUS,
) -> List[MatchResult]:
    """Return one :class:`MatchResult` per entry, in input order.

    Every ``page_index`` lies in ``[0, len(page_texts) - 1]`` for a
    non-empty document. Cancellation is polled before each entry of either
    pass; a cancelled run raises and returns nothing.
    """

    context = context or RunContext()
    page_count = len(page_texts)
    pages: List[PreparedPage] = [prepare_page(text) for text in page_texts]
    results: List[Optional[MatchResult]] = [None] * len(entries)

    context.report("Pass 1: matching entries by printed page number...")
    verified = 0
    uncertain = 0
    for position, entry in enumerate(entries):
        context.check()
        mapped = page_map.lookup(entry.page)
        if mapped is None:
            continue
        found = find_title_near(TitlePattern(entry.title), pages, mapped, verify_radius)
        if found is not None:
            result = MatchResult(found, Confidence.VERIFIED)
            verified += 1
        else:
            result = MatchResult(mapped, Confidence.UNCERTAIN)
            uncertain += 1
        results[position] = result
        _trace_result(context, position, entry, result, "printed_page")

    context.report(
        "Pass 1 result: %d/%d resolved (%d verified, %d uncertain).",
        verified + uncertain,
        len(entries),
        verified,
        uncertain,
    )

    remaining = sum(1 for result in results if result is None)
    if remaining:
        context.report("Pass 2: searching for %d remaining entries by title text...", remaining)
        found_count = 0
        missing_count = 0
        for position, entry in enumerate(entries):
            if results[position] is not None:
                continue
            context.check()
            lower, upper = _neighbour_bounds(results, position, page_count)
            found = search_title_in_range(TitlePattern(entry.title), pages, lower, upper)
            if found is not None:
                result = MatchResult(found, Confidence.UNCERTAIN)
                found_count += 1
            else:
                result = MatchResult(max(0, lower), Confidence.UNVERIFIED)
                missing_count += 1
                LOGGER.debug("No page holds %r between %d and %d", entry.title, lower, upper)
            results[position] = result
            _trace_result(context, position, entry, result, "title_search")
        context.report(
            "Pass 2 result: %d found by title, %d not found.", found_count, missing_count
        )

    return [result for result in results if result is not None]


__all__ = ["VERIFY_RADIUS", "resolve_entries"]
