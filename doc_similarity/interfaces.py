"""
Collaborator interfaces the similarity pipeline depends on.

Any object with the right method satisfies these protocols; the PyMuPDF and
OpenAI implementations in doc_similarity.extraction and
doc_similarity.embeddings are the defaults, and tests substitute fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from doc_similarity.models import ImageHandle

DocumentPath = Union[str, Path]
EmbeddingVector = Sequence[float]


@runtime_checkable
class TextExtractor(Protocol):
    """Pulls plain text out of a document. Raises ExtractionError."""

    def extract(self, document_path: DocumentPath) -> str: ...


@runtime_checkable
class ImageExtractor(Protocol):
    """Pulls embedded images out of a document. May return an empty sequence."""

    def extract(self, document_path: DocumentPath) -> Sequence[ImageHandle]: ...


@runtime_checkable
class TextEmbeddingProvider(Protocol):
    """Turns text into an embedding vector. Raises ProviderError."""

    async def embed(self, text: str) -> EmbeddingVector: ...


@runtime_checkable
class ImageFeatureProvider(Protocol):
    """Turns an image into a feature vector. Raises ProviderError."""

    async def embed(self, image: ImageHandle) -> EmbeddingVector: ...
