"""Fill pages whose printed number was missed, from consistent numbered runs.

An *anchor* is a physical page with at least one positive printed label; the
smallest label is used. Between two anchors whose physical distance equals
their label distance every page in between gets the implied label. Before
the first anchor and after the last one labels are extrapolated outward
while they stay positive. Pairs that are not linear, such as roman front
matter followed by arabic body numbering, are left alone.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..models import PageRecord, PrintedPageMap, RawEntry

LOGGER = logging.getLogger(__name__)

ROMAN_VALUES = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}
ROMAN_RE = re.compile(r"^[IVXLCDM]+$")
ARABIC_TOKEN_RE = re.compile(r"\b[0-9]{1,4}\b")
ROMAN_TOKEN_RE = re.compile(r"\b[ivxlcdmIVXLCDM]{1,10}\b")

# How far the legacy offset projection looks for a page carrying the label.
LABEL_SEARCH_RADIUS = 5


def from_roman(text: str | None) -> Optional[int]:
    """Parse a roman numeral leniently (``"IIII"`` is 4); ``None`` when invalid."""

    if not text:
        return None
    roman = text.upper().strip()
    if not ROMAN_RE.match(roman):
        return None
    values = [ROMAN_VALUES[char] for char in roman]
    total = 0
    for value, following in zip(values, values[1:] + [0]):
        total += -value if value < following else value
    return total if total > 0 else None


def harvest_page_labels(record: PageRecord) -> Set[int]:
    """Every arabic or roman label on the outermost top and bottom lines."""

    lines = []
    if record.top_lines:
        lines.append(record.top_lines[0])
    if record.bottom_lines:
        lines.append(record.bottom_lines[0])

    labels: Set[int] = set()
    for line in lines:
        labels.update(int(token) for token in ARABIC_TOKEN_RE.findall(line))
        for token in ROMAN_TOKEN_RE.findall(line):
            value = from_roman(token)
            if value:
                labels.add(value)
    return labels


def find_anchors(label_sets: Sequence[Iterable[int]]) -> List[Tuple[int, int]]:
    anchors: List[Tuple[int, int]] = []
    for index, labels in enumerate(label_sets):
        positive = [value for value in labels if value > 0]
        if positive:
            anchors.append((index, min(positive)))
    return anchors


def infer_missing_labels(label_sets: Sequence[Iterable[int]]) -> List[Set[int]]:
    inferred = [set(labels) for labels in label_sets]
    anchors = find_anchors(inferred)
    if not anchors:
        return inferred

    for (left_index, left_label), (right_index, right_label) in zip(anchors, anchors[1:]):
        page_distance = right_index - left_index
        if page_distance <= 0 or right_label - left_label != page_distance:
            continue
        for index in range(left_index, right_index + 1):
            inferred[index].add(left_label + (index - left_index))

    first_index, first_label = anchors[0]
    for index in range(first_index - 1, -1, -1):
        guessed = first_label - (first_index - index)
        if guessed <= 0:
            break
        inferred[index].add(guessed)

    last_index, last_label = anchors[-1]
    for index in range(last_index + 1, len(inferred)):
        inferred[index].add(last_label + (index - last_index))

    return inferred


def infer_sequence(numbers: Sequence[Optional[int]]) -> List[Optional[int]]:
    """Fill absent entries of a per-page number sequence; detected values are kept."""

    label_sets = [{value} if value is not None and value > 0 else set() for value in numbers]
    inferred = infer_missing_labels(label_sets)
    result: List[Optional[int]] = []
    for value, labels in zip(numbers, inferred):
        if value is not None and value > 0:
            result.append(value)
        else:
            result.append(min(labels) if labels else None)
    return result


def fill_page_map(page_map: PrintedPageMap, numbers: Sequence[Optional[int]]) -> int:
    """Add inferred entries for pages with no printed number; returns how many."""

    added = 0
    for index, value in enumerate(infer_sequence(numbers)):
        if value is None or index in page_map.physical_to_printed:
            continue
        page_map.physical_to_printed[index] = value
        page_map.inferred.add(index)
        page_map.printed_to_physical.setdefault(value, index)
        added += 1
    if added:
        LOGGER.info("Gap inference filled %d page(s) without a detected number.", added)
    return added


@dataclass(frozen=True)
class OffsetEstimate:
    """Single global ``physical - printed`` offset voted over all entries."""

    offset: int
    votes: int

    def project(self, printed: int, label_sets: Sequence[Set[int]]) -> int:
        """Physical index for ``printed``, nudged to a nearby page carrying the label."""

        page_count = len(label_sets)
        if page_count == 0:
            return 0
        if printed <= 0:
            return 0
        index = max(0, min(page_count - 1, printed + self.offset - 1))
        if printed in label_sets[index]:
            return index
        for distance in range(1, LABEL_SEARCH_RADIUS + 1):
            left = index - distance
            right = index + distance
            if left >= 0 and printed in label_sets[left]:
                return left
            if right < page_count and printed in label_sets[right]:
                return right
        return index


def detect_printed_page_offset(
    entries: Sequence[RawEntry], label_sets: Sequence[Set[int]]
) -> Optional[OffsetEstimate]:
    """Vote one document-wide offset; kept for diagnostics only."""

    votes: dict[int, int] = {}
    for entry in entries:
        if entry.page <= 0:
            continue
        for index, labels in enumerate(label_sets):
            if entry.page in labels:
                offset = index + 1 - entry.page
                votes[offset] = votes.get(offset, 0) + 1

    best: Optional[OffsetEstimate] = None
    for offset, count in votes.items():
        if best is None or count > best.votes:
            best = OffsetEstimate(offset=offset, votes=count)
    return best


__all__ = [
    "LABEL_SEARCH_RADIUS",
    "OffsetEstimate",
    "detect_printed_page_offset",
    "fill_page_map",
    "find_anchors",
    "from_roman",
    "harvest_page_labels",
    "infer_missing_labels",
    "infer_sequence",
]
