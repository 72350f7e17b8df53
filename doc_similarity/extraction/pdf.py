"""
PDF text and image extraction using PyMuPDF.

Both extractors are synchronous; the pipeline runs them in a worker thread.
"""

import io
import logging
import re
from pathlib import Path
from typing import List, Union

import fitz  # PyMuPDF
from PIL import Image

from doc_similarity.constants import MAX_IMAGE_EDGE, MIN_IMAGE_EDGE
from doc_similarity.exceptions import ExtractionError
from doc_similarity.models import ImageHandle

logger = logging.getLogger(__name__)

_INLINE_WHITESPACE = re.compile(r"[ \t\r\f\v]+")


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace and drop blank lines."""
    lines = (_INLINE_WHITESPACE.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def open_pdf(document_path: Union[str, Path]) -> "fitz.Document":
    """
    Open a PDF with PyMuPDF.

    Raises:
        ExtractionError: If the file is missing, unreadable, encrypted or not a PDF
    """
    path = Path(document_path)
    if not path.is_file():
        raise ExtractionError(path, "file not found")

    try:
        doc = fitz.open(path)
    except Exception as e:
        logger.error("Could not open %s: %s", path, e)
        raise ExtractionError(path, f"invalid or corrupted PDF: {e}") from e

    if not doc.is_pdf:
        doc.close()
        raise ExtractionError(path, "not a PDF document")
    if doc.needs_pass:
        doc.close()
        raise ExtractionError(path, "PDF is password protected")
    return doc


class PDFTextExtractor:
    """Extracts the plain text of every page, in page order."""

    def extract(self, document_path: Union[str, Path]) -> str:
        """
        Extract normalized text from a PDF.

        Args:
            document_path: Path to the PDF

        Returns:
            Page texts joined by newlines (may be empty for scanned PDFs)

        Raises:
            ExtractionError: If the PDF cannot be read
        """
        doc = open_pdf(document_path)
        try:
            pages = [page.get_text("text") for page in doc]
        except Exception as e:
            logger.exception("Text extraction failed for %s", document_path)
            raise ExtractionError(document_path, f"text extraction failed: {e}") from e
        finally:
            doc.close()

        text = normalize_text("\n".join(pages))
        logger.debug(
            "Extracted %d chars from %d page(s) of %s", len(text), len(pages), document_path
        )
        return text


class PDFImageExtractor:
    """
    Extracts embedded raster images from a PDF.

    Images are returned in page order, each image object once (an image drawn
    on several pages is only extracted the first time), converted to RGB PNG
    and down-scaled so the long edge fits max_image_edge. Images smaller than
    min_image_edge on either side are skipped.
    """

    def __init__(self, max_image_edge: int = MAX_IMAGE_EDGE, min_image_edge: int = MIN_IMAGE_EDGE):
        self.max_image_edge = max_image_edge
        self.min_image_edge = min_image_edge

    def extract(self, document_path: Union[str, Path]) -> List[ImageHandle]:
        """
        Extract images from a PDF.

        Args:
            document_path: Path to the PDF

        Returns:
            List of ImageHandle, possibly empty

        Raises:
            ExtractionError: If the PDF or one of its images cannot be read
        """
        doc = open_pdf(document_path)
        handles: List[ImageHandle] = []
        seen_xrefs = set()
        skipped = 0

        try:
            for page_number, page in enumerate(doc):
                for image_info in page.get_images(full=True):
                    xref = image_info[0]
                    if xref in seen_xrefs:
                        continue
                    seen_xrefs.add(xref)

                    image = self._load_image(doc, xref)
                    if min(image.size) < self.min_image_edge:
                        skipped += 1
                        continue

                    image = self._downscale(image)
                    data = self._to_png(image)
                    handles.append(
                        ImageHandle(
                            source=str(document_path),
                            page=page_number,
                            index=len(handles),
                            data=data,
                            mime_type="image/png",
                            width=image.width,
                            height=image.height,
                        )
                    )
        except ExtractionError:
            raise
        except Exception as e:
            logger.exception("Image extraction failed for %s", document_path)
            raise ExtractionError(document_path, f"image extraction failed: {e}") from e
        finally:
            doc.close()

        if skipped:
            logger.debug(
                "Skipped %d image(s) smaller than %dpx in %s",
                skipped,
                self.min_image_edge,
                document_path,
            )
        logger.debug("Extracted %d image(s) from %s", len(handles), document_path)
        return handles

    def _load_image(self, doc: "fitz.Document", xref: int) -> Image.Image:
        pix = fitz.Pixmap(doc, xref)
        # CMYK and other non-RGB colorspaces
        if pix.colorspace is not None and pix.colorspace.n not in (1, 3):
            pix = fitz.Pixmap(fitz.csRGB, pix)
        if pix.alpha:
            pix = fitz.Pixmap(pix, 0)  # drop alpha

        mode = "L" if pix.n == 1 else "RGB"
        image = Image.frombytes(mode, [pix.width, pix.height], pix.samples)
        return image.convert("RGB")

    def _downscale(self, image: Image.Image) -> Image.Image:
        if max(image.size) > self.max_image_edge:
            image = image.copy()
            image.thumbnail((self.max_image_edge, self.max_image_edge), Image.Resampling.LANCZOS)
        return image

    @staticmethod
    def _to_png(image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
