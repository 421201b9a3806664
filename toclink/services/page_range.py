"""Parse user page selections such as ``"1-3, 7, 10-12"``."""

from __future__ import annotations

import re
from typing import List, Set

from ..utils.errors import ValidationError

RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")
NUMBER_RE = re.compile(r"^\d+$")


def parse_page_range(text: str, page_count: int) -> List[int]:
    """Sorted, de-duplicated 1-based pages selected by ``text``.

    Ranges are clamped to ``[1, page_count]``; single pages outside it and
    malformed tokens are dropped.
    """

    if not text or not text.strip():
        raise ValidationError("Page range is empty", code="invalid_page_range")

    pages: Set[int] = set()
    for part in (token.strip() for token in text.split(",")):
        if not part:
            continue
        ranged = RANGE_RE.match(part)
        if ranged:
            start, end = int(ranged.group(1)), int(ranged.group(2))
            pages.update(range(max(1, start), min(page_count, end) + 1))
        elif NUMBER_RE.match(part):
            number = int(part)
            if 1 <= number <= page_count:
                pages.add(number)

    if not pages:
        raise ValidationError(
            "Invalid page range",
            code="invalid_page_range",
            extra={"range": text, "page_count": page_count},
        )
    return sorted(pages)


__all__ = ["parse_page_range"]
