"""Tests for the fuzzy title matcher."""

from __future__ import annotations

import pytest

from toclink.services.title_match import (
    TitlePattern,
    dice_similarity,
    find_title_near,
    normalize_text,
    prepare_page,
    search_title_in_range,
    significant_words,
    title_matches_page,
)


def test_normalize_text_strips_accents_digits_and_punctuation() -> None:
    assert normalize_text("Été 2-B") == "eteb"
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    ("left", "right"),
    [("night", "nacht"), ("Chapter One", "chapter 1"), ("a", "abc"), ("", "text")],
)
def test_dice_is_symmetric(left, right) -> None:
    assert dice_similarity(left, right) == dice_similarity(right, left)


def test_dice_identity_and_degenerate_inputs() -> None:
    assert dice_similarity("Methods", "Methods") == 1
    assert dice_similarity("night", "nacht") == pytest.approx(0.25)
    assert dice_similarity("a", "a") == 0
    assert dice_similarity("", "") == 0


def test_significant_words_drop_stop_words_and_short_tokens() -> None:
    assert significant_words("Introduction to the Theory of Fluids") == [
        "introduction",
        "theory",
        "fluids",
    ]
    assert significant_words("Histoire de la France") == ["histoire", "france"]


def test_substring_match_ignores_punctuation() -> None:
    assert title_matches_page("Chapter Two — Methods", "Intro text Chapter Two: Methods and more")


def test_word_coverage_match() -> None:
    assert title_matches_page(
        "Introduction to Fluid Dynamics", "Fluid flow dynamics: an introduction"
    )


def test_windowed_similarity_tolerates_typos() -> None:
    assert title_matches_page("Experimental Results", "the experimentl results are shown")


def test_unrelated_page_does_not_match() -> None:
    assert not title_matches_page("Conclusion", "Lorem ipsum dolor sit amet")
    assert not title_matches_page("", "Lorem ipsum")
    assert not title_matches_page("1.2", "1.2 Lorem ipsum")
    assert not title_matches_page("Methods", "")


def test_long_titles_use_the_looser_threshold() -> None:
    assert TitlePattern("A very long title about numerical methods for fluids").threshold == 0.78
    assert TitlePattern("Short title").threshold == 0.88


def test_window_score_of_exact_words_is_one() -> None:
    pattern = TitlePattern("Alpha Beta")

    assert pattern.best_window_score(["alpha", "beta"]) == pytest.approx(1.0)
    assert pattern.best_window_score([]) == 0.0


def test_find_title_near_prefers_mapped_page_then_left() -> None:
    pages = ["Methods", "nothing", "nothing", "nothing", "Methods"]

    assert find_title_near("Methods", pages, 0, 2) == 0
    assert find_title_near("Methods", pages, 2, 2) == 0
    assert find_title_near("Methods", pages, 3, 1) == 4
    assert find_title_near("Methods", pages, 2, 1) is None


def test_find_title_near_accepts_prepared_pages() -> None:
    pages = [prepare_page(text) for text in ["one", "two", "Appendix"]]

    assert find_title_near(TitlePattern("Appendix"), pages, 1, 2) == 2


def test_search_title_in_range_clamps_bounds() -> None:
    pages = ["Results", "nothing", "Results"]

    assert search_title_in_range("Results", pages, -5, 100) == 0
    assert search_title_in_range("Results", pages, 1, 2) == 2
    assert search_title_in_range("Results", pages, 1, 1) is None
    assert search_title_in_range("Results", pages, 2, 1) is None
