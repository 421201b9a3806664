"""Tests for entry level normalisation."""

from __future__ import annotations

from toclink.models import RawEntry
from toclink.services.hierarchy import normalize_hierarchy


def _levels(entries):
    return [entry.level for entry in entries]


def test_skipped_level_is_clamped() -> None:
    entries = [RawEntry("Introduction", 1, 1), RawEntry("Background", 1, 3)]

    assert _levels(normalize_hierarchy(entries)) == [1, 2]


def test_levels_are_shifted_so_the_minimum_is_one() -> None:
    entries = [RawEntry("A", 1, 3), RawEntry("B", 2, 4), RawEntry("C", 3, 3)]

    assert _levels(normalize_hierarchy(entries)) == [1, 2, 1]


def test_first_entry_always_becomes_top_level() -> None:
    entries = [RawEntry("A", 1, 2), RawEntry("B", 2, 1)]

    assert _levels(normalize_hierarchy(entries)) == [1, 1]


def test_normalisation_is_idempotent_and_pure() -> None:
    entries = [RawEntry("A", 1, 2), RawEntry("B", 2, 5), RawEntry("C", 3, 3), RawEntry("D", 4, 7)]

    once = normalize_hierarchy(entries)
    twice = normalize_hierarchy(once)

    assert once == twice
    assert _levels(entries) == [2, 5, 3, 7]
    assert [entry.title for entry in once] == ["A", "B", "C", "D"]


def test_empty_input() -> None:
    assert normalize_hierarchy([]) == []
