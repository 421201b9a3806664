"""Data models for TocLink."""

from .toc import (
    Confidence,
    MatchResult,
    PageRecord,
    PrintedPageMap,
    RawEntry,
    ResolvedEntry,
    TextFragment,
    pair_results,
)

__all__ = [
    "Confidence",
    "MatchResult",
    "PageRecord",
    "PrintedPageMap",
    "RawEntry",
    "ResolvedEntry",
    "TextFragment",
    "pair_results",
]
