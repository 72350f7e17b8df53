"""
doc_similarity - Score how similar two PDF documents are.

This package provides utilities for:
- Extracting text and embedded images from PDFs
- Embedding text and vision-tagging images via OpenAI
- Cosine similarity with explicit errors instead of NaN
- Aggregating image pair scores and blending text/image sub-scores
- A bounded-concurrency comparison pipeline and CLI
"""

__version__ = "0.1.0"

# Re-export commonly used items
from doc_similarity.config import SimilarityConfig
from doc_similarity.constants import (
    DEFAULT_IMAGE_WEIGHT,
    DEFAULT_TEXT_WEIGHT,
    EMBEDDING_MODEL,
    EMPTY_IMAGE_SCORE,
    VISION_MODEL,
)
from doc_similarity.exceptions import (
    ComparisonCancelled,
    DegenerateVector,
    DimensionMismatch,
    DocumentSimilarityError,
    ExtractionError,
    InvalidWeights,
    ProviderError,
)
from doc_similarity.models import DocumentSimilarity, ImageHandle, PipelineStage
from doc_similarity.pipeline import SimilarityPipeline, compare_documents
from doc_similarity.similarity import (
    AggregationWeights,
    ImageAggregation,
    aggregate_image_pairs,
    combine,
    cosine_similarity,
)

__all__ = [
    "__version__",
    # Config
    "SimilarityConfig",
    # Constants
    "DEFAULT_TEXT_WEIGHT",
    "DEFAULT_IMAGE_WEIGHT",
    "EMPTY_IMAGE_SCORE",
    "EMBEDDING_MODEL",
    "VISION_MODEL",
    # Errors
    "DocumentSimilarityError",
    "DimensionMismatch",
    "DegenerateVector",
    "InvalidWeights",
    "ExtractionError",
    "ProviderError",
    "ComparisonCancelled",
    # Pipeline
    "SimilarityPipeline",
    "compare_documents",
    "DocumentSimilarity",
    "ImageHandle",
    "PipelineStage",
    # Core math
    "AggregationWeights",
    "ImageAggregation",
    "aggregate_image_pairs",
    "combine",
    "cosine_similarity",
]
