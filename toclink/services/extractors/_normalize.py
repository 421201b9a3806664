from __future__ import annotations

import re

DOTS = r"[.\u2024\u2027\u00B7]"
NBSPS = "\u00A0\u2007\u2009\u202F"
SOFT_HYPH = "\u00AD"

SPACED_DOTS_RE = re.compile(r"(\d)\s*" + DOTS + r"\s*(\d)")
CONFUSABLE_ONE_RE = re.compile(r"(?:(?<=\d)|(?<=\.))\s*([Il])\s*(?=(?:\d|\b))")

# Pages with fewer digits than this are too short to judge.
MIN_DIGITS = 10


def clean_fragment_text(text: str) -> str:
    """Drop soft hyphens and turn non-breaking spaces into plain spaces."""

    text = (text or "").replace(SOFT_HYPH, "")
    for ch in NBSPS:
        text = text.replace(ch, " ")
    return text


# crude page noise scorers (operate on *raw* page text)
def score_spaced_dots_ratio(text: str) -> float:
    if not text:
        return 0.0
    digits = sum(ch.isdigit() for ch in text)
    if digits < MIN_DIGITS:
        return 0.0
    return len(SPACED_DOTS_RE.findall(text)) / digits


def score_confusable_one_ratio(text: str) -> float:
    if not text:
        return 0.0
    digits = sum(ch.isdigit() for ch in text)
    if digits < MIN_DIGITS:
        return 0.0
    hits = sum(1 for _ in CONFUSABLE_ONE_RE.finditer(text))
    return hits / digits


__all__ = [
    "clean_fragment_text",
    "score_spaced_dots_ratio",
    "score_confusable_one_ratio",
]
