from __future__ import annotations

import logging
from typing import Optional

from ..config import (
    PARSER_ENGINES,
    PARSER_NOISE_CONFUSABLE_1_THRESH,
    PARSER_NOISE_SPACED_DOT_THRESH,
    get_settings,
)
from ..utils.errors import ValidationError
from .extractors._normalize import score_confusable_one_ratio, score_spaced_dots_ratio
from .extractors.fitz_extractor import FitzTextSource, PdfInput
from .extractors.pdfium_extractor import PdfiumTextSource
from .page_data import PageTextSource

LOGGER = logging.getLogger(__name__)

# Errors PyMuPDF and pypdfium2 raise for missing, encrypted or damaged files.
OPEN_ERRORS = (RuntimeError, OSError, ValueError)


def _should_fallback_to_pdfium(source: PdfiumTextSource) -> bool:
    text = source.raw_text()
    spaced = score_spaced_dots_ratio(text)
    confusable = score_confusable_one_ratio(text)
    return (
        spaced >= PARSER_NOISE_SPACED_DOT_THRESH
        or confusable >= PARSER_NOISE_CONFUSABLE_1_THRESH
    )


def _open(engine: str, pdf: PdfInput) -> PageTextSource:
    try:
        if engine == "fitz":
            return FitzTextSource(pdf)
        return PdfiumTextSource(pdf)
    except OPEN_ERRORS as exc:
        raise ValidationError(
            f"Could not open PDF: {exc}", code="unreadable_pdf", extra={"engine": engine}
        ) from exc


def open_text_source(pdf: PdfInput, engine: Optional[str] = None) -> PageTextSource:
    """Open ``pdf`` (a path or raw bytes) with the requested extraction engine.

    ``auto`` prefers PyMuPDF and switches to pypdfium2 when PyMuPDF cannot
    open the file or pypdfium2's text looks noisy.
    """

    engine = (engine or get_settings().parser_engine or "auto").lower()
    if engine not in PARSER_ENGINES:
        raise ValidationError(f"Unknown parser engine: {engine}", code="invalid_engine")
    if engine != "auto":
        return _open(engine, pdf)

    try:
        primary = FitzTextSource(pdf)
    except OPEN_ERRORS as exc:
        LOGGER.warning("PyMuPDF could not open the PDF (%s); using pypdfium2", exc)
        return _open("pdfium", pdf)

    try:
        fallback = PdfiumTextSource(pdf)
    except OPEN_ERRORS as exc:
        LOGGER.debug("pypdfium2 noise check skipped: %s", exc)
        return primary

    try:
        noisy = _should_fallback_to_pdfium(fallback)
    except OPEN_ERRORS as exc:
        LOGGER.warning("pypdfium2 noise check failed (%s); keeping PyMuPDF", exc)
        fallback.close()
        return primary

    if noisy:
        LOGGER.info("Noisy numeric text detected; extracting with pypdfium2")
        primary.close()
        return fallback
    fallback.close()
    return primary


__all__ = ["open_text_source"]
