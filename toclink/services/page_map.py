"""Choose where printed page numbers live and map them to physical pages."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..models import PageRecord, PrintedPageMap

LOGGER = logging.getLogger(__name__)


def score_consistency(numbers: Sequence[Optional[int]]) -> int:
    """Count adjacent pages whose numbers increase by exactly one."""

    score = 0
    for previous, current in zip(numbers, numbers[1:]):
        if previous is not None and current is not None and current == previous + 1:
            score += 1
    return score


def _detected(numbers: Sequence[Optional[int]]) -> int:
    return sum(1 for value in numbers if value is not None and value > 0)


def choose_position(
    top: Sequence[Optional[int]], bottom: Sequence[Optional[int]]
) -> tuple[str, int, int]:
    """Return ``(position, top_score, bottom_score)``.

    The more consistent sequence wins. On equal scores the sequence with
    more detected numbers wins, and top wins a complete tie.
    """

    top_score = score_consistency(top)
    bottom_score = score_consistency(bottom)
    if top_score != bottom_score:
        return ("top" if top_score > bottom_score else "bottom"), top_score, bottom_score
    # A lone footer number scores 0 like an empty header; detections break the tie.
    if _detected(bottom) > _detected(top):
        return "bottom", top_score, bottom_score
    return "top", top_score, bottom_score


def chosen_sequence(records: Sequence[PageRecord], position: str) -> List[Optional[int]]:
    if position == "top":
        return [record.candidate_top for record in records]
    return [record.candidate_bottom for record in records]


def build_page_number_map(records: Sequence[PageRecord]) -> PrintedPageMap:
    top = [record.candidate_top for record in records]
    bottom = [record.candidate_bottom for record in records]
    position, top_score, bottom_score = choose_position(top, bottom)
    numbers = top if position == "top" else bottom

    page_map = PrintedPageMap(
        position=position, top_score=top_score, bottom_score=bottom_score
    )
    for index, number in enumerate(numbers):
        if number is None or number <= 0:
            continue
        page_map.printed_to_physical.setdefault(number, index)
        page_map.physical_to_printed[index] = number

    LOGGER.info(
        "Page numbers detected at %s of pages (consistency: top=%d, bottom=%d). %d pages mapped.",
        position,
        top_score,
        bottom_score,
        len(page_map.printed_to_physical),
    )
    return page_map


__all__ = [
    "build_page_number_map",
    "choose_position",
    "chosen_sequence",
    "score_consistency",
]
