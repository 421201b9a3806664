from __future__ import annotations

import os
from typing import List, Union

import fitz

from ...models import TextFragment
from ._normalize import clean_fragment_text

PdfInput = Union[str, os.PathLike, bytes, bytearray]


def open_fitz_document(pdf: PdfInput) -> fitz.Document:
    if isinstance(pdf, (bytes, bytearray)):
        return fitz.open(stream=bytes(pdf), filetype="pdf")
    return fitz.open(os.fspath(pdf))


class FitzTextSource:
    """Page text fragments read with PyMuPDF.

    ``y`` is the span baseline measured up from the bottom edge of the page,
    so larger values sit higher on the page.
    """

    def __init__(self, pdf: PdfInput) -> None:
        self._document = open_fitz_document(pdf)

    @property
    def page_count(self) -> int:
        return len(self._document)

    def fragments(self, index: int) -> List[TextFragment]:
        page = self._document[index]
        height = page.rect.height
        output: List[TextFragment] = []
        for block in page.get_text("dict").get("blocks", []):
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = clean_fragment_text(span.get("text", ""))
                    if not text.strip():
                        continue
                    origin = span.get("origin") or (0.0, span["bbox"][3])
                    output.append(TextFragment(text=text, y=height - origin[1]))
        return output

    def close(self) -> None:
        self._document.close()

    def __enter__(self) -> "FitzTextSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["FitzTextSource", "PdfInput", "open_fitz_document"]
