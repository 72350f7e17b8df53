"""
Data classes shared by the pipeline and its collaborators.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from doc_similarity.similarity.aggregate import (
    DEFAULT_WEIGHTS,
    AggregationWeights,
    ImageAggregation,
    interpret_similarity_score,
)


class PipelineStage(str, Enum):
    """Stages of one comparison, in order."""

    START = "start"
    TEXT_EXTRACTED = "text_extracted"
    TEXT_EMBEDDED = "text_embedded"
    IMAGES_EXTRACTED = "images_extracted"
    IMAGES_FEATURED = "images_featured"
    AGGREGATED = "aggregated"
    DONE = "done"


@dataclass(frozen=True)
class ImageHandle:
    """One embedded image pulled out of a document, normalized to PNG."""

    source: str  # Path of the document it came from
    page: int  # 0-indexed page number
    index: int  # Position among the document's images
    data: bytes = field(repr=False)
    mime_type: str = "image/png"
    width: int = 0
    height: int = 0

    @property
    def content_hash(self) -> str:
        """SHA256 of the image bytes; identical images share a hash."""
        return hashlib.sha256(self.data).hexdigest()


@dataclass
class DocumentSimilarity:
    """
    Result of comparing two documents.

    The final score is a weighted blend of the text and image sub-scores,
    both of which are kept for observability.
    """

    final_score: float
    text_score: float
    image_score: float
    image_pair_count: int
    images_a: int
    images_b: int
    weights: AggregationWeights = DEFAULT_WEIGHTS
    strategy: ImageAggregation = ImageAggregation.MEAN
    duration_ms: float = 0.0

    @property
    def interpretation(self) -> str:
        return interpret_similarity_score(self.final_score)

    @property
    def used_empty_image_default(self) -> bool:
        """True when no image pairs existed and the default image score applied."""
        return self.image_pair_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_score": self.final_score,
            "text_score": self.text_score,
            "image_score": self.image_score,
            "image_pair_count": self.image_pair_count,
            "images_a": self.images_a,
            "images_b": self.images_b,
            "weights": {"text": self.weights.text, "image": self.weights.image},
            "strategy": self.strategy.value,
            "interpretation": self.interpretation,
            "duration_ms": round(self.duration_ms, 1),
        }
