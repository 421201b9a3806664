"""Fuzzy matching of table-of-contents titles against page text.

A title matches a page when, in order of cost:

1. its letters-only form is a substring of the page's letters-only form;
2. enough of its significant words occur on the page;
3. some window of page words has a letter-bigram Dice score above a
   length-dependent threshold.

The windowed score tolerates OCR noise, hyphenation and light paraphrase
without needing the page to be tokenised the same way as the title.
"""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

NON_LETTER_RE = re.compile(r"[^a-zA-Z]")
NON_WORD_RE = re.compile(r"[^a-zA-Z\s]")

STOP_WORDS = frozenset(
    {
        "les", "des", "une", "dans", "pour", "avec", "sans", "dont", "entre", "sous",
        "sur", "aux", "du", "de", "la", "le", "et", "ou", "en", "au", "par", "l", "d",
        "the", "and", "for", "from", "with", "that", "this",
    }
)

MIN_WORD_LENGTH = 3
MIN_SIGNIFICANT_WORDS = 2
MANY_WORDS = 6
COVERAGE_MANY_WORDS = 0.5
COVERAGE_FEW_WORDS = 0.67
LONG_TITLE_CHARS = 40
SIMILARITY_LONG_TITLE = 0.78
SIMILARITY_SHORT_TITLE = 0.88
WINDOW_SHRINK = 6
WINDOW_GROW = 8


def _decompose(text: object) -> str:
    return unicodedata.normalize("NFKD", str(text or ""))


def normalize_text(text: object) -> str:
    """Letters-only, lowercase, diacritics stripped: ``"Été 2-B"`` -> ``"eteb"``."""

    return NON_LETTER_RE.sub("", _decompose(text)).lower()


def word_blob(text: object) -> str:
    """Lowercase text where every non-letter became a space."""

    return NON_WORD_RE.sub(" ", _decompose(text)).lower()


def letter_bigrams(text: object) -> Counter:
    cleaned = normalize_text(text)
    if len(cleaned) < 2:
        return Counter()
    return Counter(cleaned[index : index + 2] for index in range(len(cleaned) - 1))


def _dice(left: Counter, right: Counter) -> float:
    if not left or not right:
        return 0.0
    overlap = sum((left & right).values())
    return 2 * overlap / (sum(left.values()) + sum(right.values()))


def dice_similarity(left: object, right: object) -> float:
    """Dice coefficient over letter-bigram multisets; 0 when a side has < 2 letters."""

    return _dice(letter_bigrams(left), letter_bigrams(right))


def significant_words(title: object) -> List[str]:
    return [
        word
        for word in word_blob(title).split()
        if len(word) >= MIN_WORD_LENGTH and word not in STOP_WORDS
    ]


@dataclass(frozen=True)
class PreparedPage:
    """Page text in the forms the matcher needs, computed once per page."""

    letters: str
    blob: str
    tokens: Tuple[str, ...]


def prepare_page(text: object) -> PreparedPage:
    blob = word_blob(text)
    return PreparedPage(letters=normalize_text(text), blob=blob, tokens=tuple(blob.split()))


PageLike = Union[str, PreparedPage]


class TitlePattern:
    """Everything derived from one title, reused across the pages it is tested on."""

    def __init__(self, title: str) -> None:
        self.title = title
        self.letters = normalize_text(title)
        self.words = significant_words(title)
        self.bigrams = letter_bigrams(title)
        self.bigram_count = sum(self.bigrams.values())
        self.word_count = max(1, len(NON_WORD_RE.sub(" ", _decompose(title)).split()))
        if len(self.words) >= MANY_WORDS:
            self.min_coverage = COVERAGE_MANY_WORDS
        else:
            self.min_coverage = COVERAGE_FEW_WORDS
        if len(self.letters) > LONG_TITLE_CHARS:
            self.threshold = SIMILARITY_LONG_TITLE
        else:
            self.threshold = SIMILARITY_SHORT_TITLE

    def coverage(self, page: PreparedPage) -> float:
        if not self.words:
            return 0.0
        found = sum(1 for word in self.words if word in page.blob)
        return found / len(self.words)

    def best_window_score(self, tokens: Sequence[str], stop_at: Optional[float] = None) -> float:
        """Best Dice score between the title and any window of ``tokens``.

        Window lengths run from ``max(2, n - 6)`` to ``n + 8`` words, ``n``
        being the title's word count. Bigram counts grow incrementally as a
        window is extended so each start position costs one pass.
        """

        if not self.bigram_count:
            return 0.0
        min_span = max(2, self.word_count - WINDOW_SHRINK)
        max_span = self.word_count + WINDOW_GROW
        wanted = self.bigrams
        best = 0.0
        total = len(tokens)
        for start in range(total):
            window: Counter = Counter()
            size = 0
            overlap = 0
            last_char = ""
            for end in range(start, min(total, start + max_span)):
                token = tokens[end]
                grams = [token[index : index + 2] for index in range(len(token) - 1)]
                if last_char:
                    grams.append(last_char + token[0])
                for gram in grams:
                    if window[gram] < wanted.get(gram, 0):
                        overlap += 1
                    window[gram] += 1
                size += len(grams)
                last_char = token[-1]
                if end - start + 1 < min_span or not size:
                    continue
                score = 2 * overlap / (self.bigram_count + size)
                if score > best:
                    best = score
                    if stop_at is not None and best >= stop_at:
                        return best
        return best

    def matches(self, page: PageLike) -> bool:
        if isinstance(page, str):
            page = prepare_page(page)
        if not self.letters or not page.letters:
            return False
        if self.letters in page.letters:
            return True
        if len(self.words) >= MIN_SIGNIFICANT_WORDS and self.coverage(page) >= self.min_coverage:
            return True
        return self.best_window_score(page.tokens, stop_at=self.threshold) >= self.threshold


def title_matches_page(title: str, page_text: PageLike) -> bool:
    return TitlePattern(title).matches(page_text)


def _pattern(title: Union[str, TitlePattern]) -> TitlePattern:
    return title if isinstance(title, TitlePattern) else TitlePattern(title)


def find_title_near(
    title: Union[str, TitlePattern], pages: Sequence[PageLike], index: int, radius: int
) -> Optional[int]:
    """Index of the closest page around ``index`` holding the title, left side first."""

    pattern = _pattern(title)
    count = len(pages)
    if 0 <= index < count and pattern.matches(pages[index]):
        return index
    for distance in range(1, radius + 1):
        left = index - distance
        right = index + distance
        if 0 <= left < count and pattern.matches(pages[left]):
            return left
        if 0 <= right < count and pattern.matches(pages[right]):
            return right
    return None


def search_title_in_range(
    title: Union[str, TitlePattern], pages: Sequence[PageLike], lower: int, upper: int
) -> Optional[int]:
    """First page in ``[lower, upper]`` (clamped to the document) holding the title."""

    pattern = _pattern(title)
    start = max(0, lower)
    end = min(len(pages) - 1, upper)
    for index in range(start, end + 1):
        if pattern.matches(pages[index]):
            return index
    return None


__all__ = [
    "PreparedPage",
    "STOP_WORDS",
    "TitlePattern",
    "dice_similarity",
    "find_title_near",
    "letter_bigrams",
    "normalize_text",
    "prepare_page",
    "search_title_in_range",
    "significant_words",
    "title_matches_page",
    "word_blob",
]
