from __future__ import annotations

import os
from typing import List, Union

import pypdfium2 as pdfium

from ...models import TextFragment
from ._normalize import clean_fragment_text

PdfInput = Union[str, os.PathLike, bytes, bytearray]


class PdfiumTextSource:
    """Page text fragments read with pypdfium2, one fragment per text rectangle.

    PDFium already reports coordinates from the bottom of the page, so the
    rectangle's bottom edge is used as ``y`` directly.
    """

    def __init__(self, pdf: PdfInput) -> None:
        if isinstance(pdf, (bytes, bytearray)):
            pdf = bytes(pdf)
        elif not isinstance(pdf, str):
            pdf = os.fspath(pdf)
        self._document = pdfium.PdfDocument(pdf)

    @property
    def page_count(self) -> int:
        return len(self._document)

    def fragments(self, index: int) -> List[TextFragment]:
        page = self._document.get_page(index)
        text_page = page.get_textpage()
        output: List[TextFragment] = []
        try:
            for rect_index in range(text_page.count_rects()):
                left, bottom, right, top = text_page.get_rect(rect_index)
                text = clean_fragment_text(
                    text_page.get_text_bounded(left=left, bottom=bottom, right=right, top=top)
                )
                if text.strip():
                    output.append(TextFragment(text=text, y=bottom))
        finally:
            text_page.close()
            page.close()
        return output

    def page_text(self, index: int) -> str:
        page = self._document.get_page(index)
        text_page = page.get_textpage()
        try:
            return text_page.get_text_range() or ""
        finally:
            text_page.close()
            page.close()

    def raw_text(self) -> str:
        return "\n".join(self.page_text(index) for index in range(self.page_count))

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "PdfiumTextSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["PdfiumTextSource"]
