"""
Similarity computation utilities.

Provides cosine similarity on embeddings and the aggregation of
text and image sub-scores into one document score.
"""

from doc_similarity.similarity.aggregate import (
    DEFAULT_WEIGHTS,
    AggregationWeights,
    ImageAggregation,
    aggregate_image_pairs,
    combine,
    interpret_similarity_score,
    validate_weights,
)
from doc_similarity.similarity.cosine import (
    compute_cross_similarity_matrix,
    cosine_similarity,
    dot,
    find_degenerate_rows,
    magnitude,
    validate_embedding,
    validate_similarity_score,
)

__all__ = [
    # Cosine
    "cosine_similarity",
    "compute_cross_similarity_matrix",
    "dot",
    "find_degenerate_rows",
    "magnitude",
    "validate_embedding",
    "validate_similarity_score",
    # Aggregation
    "AggregationWeights",
    "DEFAULT_WEIGHTS",
    "ImageAggregation",
    "aggregate_image_pairs",
    "combine",
    "interpret_similarity_score",
    "validate_weights",
]
