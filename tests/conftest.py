"""
Pytest configuration and shared fixtures for doc_similarity tests.
"""

import io
import os

import pytest

from doc_similarity.config import SimilarityConfig

# Set test environment variables if not already set
if not os.getenv("OPENAI_API_KEY"):
    os.environ["OPENAI_API_KEY"] = "sk-test"


@pytest.fixture
def config():
    """Config with a dummy key; collaborators are always injected in tests."""
    return SimilarityConfig(api_key="sk-test")


@pytest.fixture
def png_bytes():
    """Factory for small solid-color PNG images."""
    from PIL import Image

    def _make(color=(200, 30, 30), size=(64, 48)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", size, color).save(buffer, format="PNG")
        return buffer.getvalue()

    return _make


@pytest.fixture
def make_pdf(tmp_path, png_bytes):
    """Factory writing a PDF with the given text and embedded images to tmp_path."""
    import fitz  # PyMuPDF

    def _make(name: str, text: str = "", images=(), pages: int = 1):
        doc = fitz.open()
        for page_number in range(pages):
            page = doc.new_page()
            if text and page_number == 0:
                page.insert_text((72, 72), text, fontsize=11)
            if page_number == 0:
                for i, image in enumerate(images):
                    data = image if isinstance(image, bytes) else png_bytes(*image)
                    rect = fitz.Rect(72, 120 + i * 110, 172, 200 + i * 110)
                    page.insert_image(rect, stream=data)
        path = tmp_path / name
        doc.save(str(path))
        doc.close()
        return path

    return _make
