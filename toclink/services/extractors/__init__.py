"""PDF text sources backed by PyMuPDF and pypdfium2."""

from .fitz_extractor import FitzTextSource
from .pdfium_extractor import PdfiumTextSource

__all__ = ["FitzTextSource", "PdfiumTextSource"]
