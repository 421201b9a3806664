"""Printed page-number detection on header and footer lines."""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional

SEPARATORS = r"\s—–\-|.·•*_~"

EXACT_DIGITS_RE = re.compile(r"^([0-9]{1,4})$")
DECORATED_RE = re.compile(r"^[" + SEPARATORS + r"]*?([0-9]{1,4})[" + SEPARATORS + r"]*$")
LINE_END_RE = re.compile(r"[\s—–\-|,]+([0-9]{1,4})$")
LINE_START_RE = re.compile(r"^([0-9]{1,4})[\s—–\-|]")
OUTLINE_NUMBERING_RE = re.compile(r"^[0-9]+[.°):]")

# Longer lines are body text, not running headers or footers.
EDGE_LINE_MAX_LENGTH = 120


def match_exact_digits(line: str) -> Optional[int]:
    """``"12"`` -> 12."""

    match = EXACT_DIGITS_RE.match(line)
    return int(match.group(1)) if match else None


def match_decorated(line: str) -> Optional[int]:
    """``"— 101 —"``, ``"| 7 |"``, ``"- 12 -"`` -> the enclosed number."""

    match = DECORATED_RE.match(line)
    return int(match.group(1)) if match else None


def match_line_edge(line: str) -> Optional[int]:
    """Number at the end (``"Chapter 3 | 41"``) or start (``"41 Chapter 3"``) of a short line.

    A leading number directly followed by ``.``, ``)``, ``°`` or ``:`` is
    outline numbering and is ignored.
    """

    if len(line) >= EDGE_LINE_MAX_LENGTH:
        return None
    end_match = LINE_END_RE.search(line)
    if end_match:
        return int(end_match.group(1))
    start_match = LINE_START_RE.match(line)
    if start_match and not OUTLINE_NUMBERING_RE.match(line):
        return int(start_match.group(1))
    return None


LINE_RULES: tuple[Callable[[str], Optional[int]], ...] = (
    match_exact_digits,
    match_decorated,
    match_line_edge,
)


def page_number_from_line(line: str | None) -> Optional[int]:
    if not line:
        return None
    trimmed = line.strip()
    if not trimmed:
        return None
    for rule in LINE_RULES:
        number = rule(trimmed)
        if number is not None:
            return number
    return None


def detect_page_number(lines: Iterable[str]) -> Optional[int]:
    """Return the first number found in ``lines`` (outermost line first)."""

    for line in lines:
        number = page_number_from_line(line)
        if number is not None:
            return number
    return None


__all__ = [
    "EDGE_LINE_MAX_LENGTH",
    "LINE_RULES",
    "detect_page_number",
    "match_decorated",
    "match_exact_digits",
    "match_line_edge",
    "page_number_from_line",
]
