"""PDF text and image extraction."""

from doc_similarity.extraction.pdf import (
    PDFImageExtractor,
    PDFTextExtractor,
    normalize_text,
    open_pdf,
)

__all__ = [
    "PDFImageExtractor",
    "PDFTextExtractor",
    "normalize_text",
    "open_pdf",
]
