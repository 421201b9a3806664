"""Smoke tests for the PyMuPDF and pypdfium2 text sources."""

from __future__ import annotations

import pytest

from toclink.models import RawEntry
from toclink.services.extractors import FitzTextSource, PdfiumTextSource
from toclink.services.extractors._normalize import (
    clean_fragment_text,
    score_confusable_one_ratio,
    score_spaced_dots_ratio,
)
from toclink.services.context import RunContext
from toclink.services import text_extraction
from toclink.services.text_extraction import open_text_source
from toclink.services.toc_import import resolve_document
from toclink.utils.errors import ValidationError


def test_clean_fragment_text() -> None:
    assert clean_fragment_text("hy\u00adphen\u00a0ated") == "hyphen ated"
    assert clean_fragment_text(None) == ""


def test_noise_scores_need_enough_digits() -> None:
    assert score_spaced_dots_ratio("1 . 2") == 0.0
    assert score_spaced_dots_ratio("1 . 2 3 . 4 5 . 6 7 . 8 9 . 0") == pytest.approx(0.5)
    assert score_confusable_one_ratio("") == 0.0
    assert score_confusable_one_ratio("0123456789") == 0.0


def test_fitz_source_reports_bottom_up_positions(make_pdf) -> None:
    data = make_pdf([[("Running head", 50.0), ("Body", 400.0), ("7", 800.0)]])

    with FitzTextSource(data) as source:
        fragments = source.fragments(0)

    assert source.page_count == 1
    by_text = {fragment.text.strip(): fragment.y for fragment in fragments}
    assert by_text["Running head"] > by_text["Body"] > by_text["7"]
    assert by_text["7"] == pytest.approx(42.0, abs=1.0)


def test_pdfium_source_reads_the_same_lines(make_pdf) -> None:
    data = make_pdf([[("Running head", 50.0), ("Body", 400.0), ("7", 800.0)]])

    with PdfiumTextSource(data) as source:
        fragments = source.fragments(0)
        text = source.page_text(0)

    assert "Running head" in text
    ordered = sorted(fragments, key=lambda fragment: fragment.y, reverse=True)
    assert ordered[0].text.strip().startswith("Running")
    assert ordered[-1].text.strip() == "7"


@pytest.mark.parametrize("engine", ["fitz", "pdfium", "auto"])
def test_chapter_pdf_resolves_with_every_engine(chapter_pdf, engine) -> None:
    source = open_text_source(chapter_pdf, engine)
    try:
        result = resolve_document(
            [RawEntry("Chapter Two — Methods", 2)], RunContext(source=source)
        )
    finally:
        source.close()

    assert result.page_count == 10
    assert result.outline()[0]["page_index"] == 4
    assert result.outline()[0]["confidence"] == "verified"


def test_unreadable_pdf_is_a_validation_error() -> None:
    with pytest.raises(ValidationError) as excinfo:
        open_text_source(b"this is not a pdf", "auto")

    assert excinfo.value.code == "unreadable_pdf"


def test_unknown_engine_is_rejected(chapter_pdf) -> None:
    with pytest.raises(ValidationError):
        open_text_source(chapter_pdf, "tesseract")


def test_auto_keeps_pymupdf_when_noise_check_fails(monkeypatch, chapter_pdf) -> None:
    def broken_raw_text(self) -> str:
        raise RuntimeError("Failed to get text range")

    monkeypatch.setattr(PdfiumTextSource, "raw_text", broken_raw_text)

    source = open_text_source(chapter_pdf, "auto")
    try:
        assert isinstance(source, FitzTextSource)
        assert source.page_count == 10
    finally:
        source.close()


def test_auto_switches_to_pdfium_on_noisy_text(monkeypatch, chapter_pdf) -> None:
    monkeypatch.setattr(text_extraction, "_should_fallback_to_pdfium", lambda source: True)

    source = open_text_source(chapter_pdf, "auto")
    try:
        assert isinstance(source, PdfiumTextSource)
    finally:
        source.close()
