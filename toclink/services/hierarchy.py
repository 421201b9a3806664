"""Repair entry levels so the outline never skips a level."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence

from ..models import RawEntry


def normalize_hierarchy(entries: Sequence[RawEntry]) -> List[RawEntry]:
    """Shift levels so the shallowest is 1, then clamp each to previous + 1.

    The first entry is clamped against an implicit level 0, so it always
    ends up at level 1.

    Order is preserved and the input is left untouched.
    """

    if not entries:
        return []

    adjustment = 1 - min(entry.level for entry in entries)
    normalized: List[RawEntry] = []
    previous_level = 0
    for entry in entries:
        level = entry.level + adjustment
        if level > previous_level + 1:
            level = previous_level + 1
        normalized.append(entry if level == entry.level else replace(entry, level=level))
        previous_level = level
    return normalized


__all__ = ["normalize_hierarchy"]
