"""
Score aggregation for document similarity.

Two steps turn raw cosine scores into one document-level number:

1. The image pair matrix (every image of document A against every image of
   document B) collapses into one image score under an ImageAggregation
   strategy.
2. The text and image scores blend into the final score with fixed weights.

By default image pairs are averaged, an empty image set scores 1.0 and the
weights are text=0.7 / image=0.3.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from doc_similarity.constants import (
    DEFAULT_IMAGE_WEIGHT,
    DEFAULT_TEXT_WEIGHT,
    EMPTY_IMAGE_SCORE,
    HIGHLY_SIMILAR_THRESHOLD,
    NEAR_DUPLICATE_THRESHOLD,
    RELATED_THRESHOLD,
    WEIGHT_SUM_TOLERANCE,
)
from doc_similarity.exceptions import InvalidWeights

logger = logging.getLogger(__name__)


class ImageAggregation(str, Enum):
    """How the image pair matrix collapses into one score."""

    MEAN = "mean"  # Average over every pair
    MAX = "max"  # Single most similar pair
    BEST_MATCH = "best_match"  # Each image's best counterpart, averaged both ways


@dataclass(frozen=True)
class AggregationWeights:
    """Weights for blending the text and image sub-scores."""

    text: float = DEFAULT_TEXT_WEIGHT
    image: float = DEFAULT_IMAGE_WEIGHT

    @classmethod
    def from_text_weight(cls, text: float) -> AggregationWeights:
        """Build weights from the text share; the image share is the remainder."""
        return cls(text=text, image=1.0 - text)

    @classmethod
    def coerce(cls, weights: AggregationWeights | dict) -> AggregationWeights:
        """Accept either an AggregationWeights or a {"text": .., "image": ..} dict."""
        if isinstance(weights, cls):
            return weights
        try:
            return cls(text=float(weights["text"]), image=float(weights["image"]))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidWeights(
                weights.get("text") if isinstance(weights, dict) else None,
                weights.get("image") if isinstance(weights, dict) else None,
                reason=f"expected text and image weights ({e})",
            ) from e


DEFAULT_WEIGHTS = AggregationWeights()


def validate_weights(weights: AggregationWeights | dict) -> AggregationWeights:
    """
    Check that weights are finite, non-negative and sum to 1.0.

    Weights are never normalized: a misconfigured blend fails loudly.

    Returns:
        The weights as an AggregationWeights instance

    Raises:
        InvalidWeights: If the weights are outside the accepted policy
    """
    weights = AggregationWeights.coerce(weights)

    if not (math.isfinite(weights.text) and math.isfinite(weights.image)):
        raise InvalidWeights(weights.text, weights.image, reason="weights must be finite")
    if weights.text < 0 or weights.image < 0:
        raise InvalidWeights(weights.text, weights.image, reason="weights must be non-negative")
    if not math.isclose(weights.text + weights.image, 1.0, abs_tol=WEIGHT_SUM_TOLERANCE):
        raise InvalidWeights(
            weights.text,
            weights.image,
            reason=f"must sum to 1.0 (got {weights.text + weights.image})",
        )
    return weights


def aggregate_image_pairs(
    pairs: Sequence[float] | np.ndarray,
    strategy: ImageAggregation | str = ImageAggregation.MEAN,
    empty_score: float = EMPTY_IMAGE_SCORE,
) -> float:
    """
    Collapse pairwise image similarity scores into one image score.

    Args:
        pairs: Pair scores, either flat or as a len(A) x len(B) matrix
        strategy: Aggregation strategy (mean, max or best_match)
        empty_score: Score returned when there are no pairs to compare

    Returns:
        Document-level image similarity

    Raises:
        ValueError: If best_match is requested for a flat sequence
    """
    strategy = ImageAggregation(strategy)
    scores = np.asarray(pairs, dtype=np.float64)

    if scores.size == 0:
        logger.debug(f"No image pairs to compare, using default score {empty_score}")
        return float(empty_score)

    if strategy == ImageAggregation.MEAN:
        return float(np.mean(scores))

    if strategy == ImageAggregation.MAX:
        return float(np.max(scores))

    if scores.ndim != 2:
        raise ValueError("best_match aggregation needs a 2-D pair matrix, not a flat sequence")

    # Best counterpart for each image of A, then for each image of B
    best_for_a = scores.max(axis=1)
    best_for_b = scores.max(axis=0)
    return float(np.concatenate([best_for_a, best_for_b]).mean())


def combine(
    text_score: float,
    image_score: float,
    weights: AggregationWeights | dict = DEFAULT_WEIGHTS,
) -> float:
    """
    Blend the text and image sub-scores into the final document score.

    Args:
        text_score: Cosine similarity of the two text embeddings
        image_score: Aggregated image similarity
        weights: Blend weights (default text=0.7, image=0.3)

    Returns:
        weights.text * text_score + weights.image * image_score

    Raises:
        InvalidWeights: If the weights are outside the accepted policy
    """
    weights = validate_weights(weights)
    return weights.text * text_score + weights.image * image_score


def interpret_similarity_score(score: float) -> str:
    """
    Interpret a final document similarity score.

    Returns:
        Human-readable interpretation
    """
    if score >= NEAR_DUPLICATE_THRESHOLD:
        return "near_duplicate"
    elif score >= HIGHLY_SIMILAR_THRESHOLD:
        return "highly_similar"
    elif score >= RELATED_THRESHOLD:
        return "related"
    else:
        return "dissimilar"
