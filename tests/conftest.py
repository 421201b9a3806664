"""Test configuration for TocLink."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Generator, List, Optional, Sequence, Tuple

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest  # noqa: E402

from toclink.config import reset_settings_cache  # noqa: E402
from toclink.services.page_data import MemoryTextSource  # noqa: E402

HEADER_Y = 780.0
BODY_Y = 700.0
FOOTER_Y = 30.0

PageSpec = Tuple[Sequence[str], Optional[str], Optional[str]]


@pytest.fixture(autouse=True)
def _isolate_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Provide isolated configuration for each test."""

    for name in (
        "OPENAI_API_KEY",
        "LLM_PROVIDER",
        "PARSER_ENGINE",
        "TOCLINK_TRACE",
        "TOCLINK_GAP_INFERENCE",
        "TOCLINK_VERIFY_RADIUS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TOCLINK_TRACE_DIR", str(tmp_path / "trace"))
    monkeypatch.setenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024))
    reset_settings_cache()
    yield
    reset_settings_cache()


def page_lines(
    body: Sequence[str], header: Optional[str] = None, footer: Optional[str] = None
) -> List[Tuple[str, float]]:
    """Fragments for one page: optional header, body lines top-down, optional footer."""

    lines: List[Tuple[str, float]] = []
    if header is not None:
        lines.append((header, HEADER_Y))
    for offset, text in enumerate(body):
        lines.append((text, BODY_Y - 20.0 * offset))
    if footer is not None:
        lines.append((footer, FOOTER_Y))
    return lines


@pytest.fixture
def make_document() -> Callable[[Sequence[PageSpec]], MemoryTextSource]:
    """Build an in-memory document from ``(body, header, footer)`` page specs."""

    def _build(pages: Sequence[PageSpec]) -> MemoryTextSource:
        return MemoryTextSource.from_lines(
            [page_lines(body, header, footer) for body, header, footer in pages]
        )

    return _build


@pytest.fixture
def chapter_document(make_document) -> MemoryTextSource:
    """Ten pages; index 4 holds "Chapter Two: Methods" above a printed footer "2"."""

    pages: List[PageSpec] = []
    for index in range(10):
        body = ["Lorem ipsum dolor sit amet", "consectetur adipiscing elit"]
        footer = None
        if index == 4:
            body = ["Chapter Two: Methods", "We describe the apparatus used here"]
            footer = "2"
        pages.append((body, None, footer))
    return make_document(pages)


PDF_WIDTH = 595
PDF_HEIGHT = 842


@pytest.fixture
def make_pdf() -> Callable[[Sequence[Sequence[Tuple[str, float]]]], bytes]:
    """Render pages of ``(text, baseline_from_top)`` lines into PDF bytes with PyMuPDF."""

    import fitz

    def _build(pages: Sequence[Sequence[Tuple[str, float]]]) -> bytes:
        document = fitz.open()
        try:
            for lines in pages:
                page = document.new_page(width=PDF_WIDTH, height=PDF_HEIGHT)
                for text, baseline in lines:
                    page.insert_text((72, baseline), text, fontsize=11)
            return document.tobytes()
        finally:
            document.close()

    return _build


@pytest.fixture
def chapter_pdf(make_pdf) -> bytes:
    """PDF twin of ``chapter_document``: the footer "2" sits on physical page 5."""

    pages = []
    for index in range(10):
        lines = [("Lorem ipsum dolor sit amet", 100.0), ("consectetur adipiscing elit", 120.0)]
        if index == 4:
            lines = [
                ("Chapter Two: Methods", 100.0),
                ("We describe the apparatus used here", 120.0),
                ("2", 800.0),
            ]
        pages.append(lines)
    return make_pdf(pages)
