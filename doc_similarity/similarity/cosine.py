"""
Cosine similarity computation utilities.

Provides cosine similarity on embeddings using NumPy. Unlike a plain
normalize-and-dot, every function here refuses to guess: a zero-magnitude
vector or one holding NaN/Inf raises DegenerateVector and a length mismatch
raises DimensionMismatch, so a NaN never leaks into an aggregated score.

Vectors are scaled by their largest absolute component before any norm is
taken, so very large components cannot overflow and very small ones cannot
underflow to a zero norm.
"""

import logging
from typing import List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from doc_similarity.exceptions import DegenerateVector, DimensionMismatch

logger = logging.getLogger(__name__)

Vector = Union[Sequence[float], NDArray[np.floating]]

NON_FINITE = "contains NaN or Inf values"


def _as_vector(vec: Vector) -> NDArray[np.float64]:
    arr = np.asarray(vec, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"Expected a 1-D vector, got shape {arr.shape}")
    return arr


def _scaled(arr: NDArray[np.float64], which: str) -> NDArray[np.float64]:
    """Divide by the largest absolute component; the direction is unchanged."""
    if not np.all(np.isfinite(arr)):
        raise DegenerateVector(which, NON_FINITE)
    scale = np.max(np.abs(arr))
    if scale == 0:
        raise DegenerateVector(which)
    return arr / scale


def _scaled_rows(matrix: NDArray[np.float64], which: str) -> NDArray[np.float64]:
    finite = np.all(np.isfinite(matrix), axis=1)
    if not np.all(finite):
        raise DegenerateVector(f"vector {int(np.argmin(finite))} of the {which} set", NON_FINITE)
    scales = np.max(np.abs(matrix), axis=1)
    if np.any(scales == 0):
        raise DegenerateVector(f"vector {int(np.argmin(scales))} of the {which} set")
    return matrix / scales[:, np.newaxis]


def dot(a: Vector, b: Vector) -> float:
    """Dot product of two equal-length vectors."""
    v1 = _as_vector(a)
    v2 = _as_vector(b)
    if v1.shape != v2.shape:
        raise DimensionMismatch(len(v1), len(v2))
    return float(np.dot(v1, v2))


def magnitude(vec: Vector) -> float:
    """Euclidean (L2) norm of a vector."""
    arr = _as_vector(vec)
    scale = np.max(np.abs(arr)) if arr.size else 0.0
    if scale == 0 or not np.isfinite(scale):
        return float(scale)
    return float(scale * np.linalg.norm(arr / scale))


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        a: First embedding vector
        b: Second embedding vector

    Returns:
        Similarity score in range [-1, 1]

    Raises:
        DimensionMismatch: If the vectors differ in length or are empty
        DegenerateVector: If either vector has zero magnitude or holds NaN/Inf
    """
    v1 = _as_vector(a)
    v2 = _as_vector(b)

    if v1.shape != v2.shape or v1.size == 0:
        raise DimensionMismatch(len(v1), len(v2))

    v1 = _scaled(v1, "first vector")
    v2 = _scaled(v2, "second vector")

    score = float(np.dot(v1, v2) / (np.linalg.norm(v1) * np.linalg.norm(v2)))
    # Rounding can push identical vectors a hair past 1.0
    return max(-1.0, min(1.0, score))


def find_degenerate_rows(vectors: Sequence[Vector]) -> List[int]:
    """Return the indices of zero-magnitude vectors."""
    return [i for i, vec in enumerate(vectors) if not np.any(_as_vector(vec))]


def compute_cross_similarity_matrix(
    vectors_a: Sequence[Vector],
    vectors_b: Sequence[Vector],
) -> NDArray[np.float64]:
    """
    Compute the cosine similarity of every vector in A against every vector in B.

    Args:
        vectors_a: Embedding vectors for the first document
        vectors_b: Embedding vectors for the second document

    Returns:
        len(A) x len(B) similarity matrix. If either side is empty the matrix
        has a zero dimension.

    Raises:
        DimensionMismatch: If the vectors do not all share one length
        DegenerateVector: If any vector has zero magnitude or holds NaN/Inf
    """
    if len(vectors_a) == 0 or len(vectors_b) == 0:
        return np.zeros((len(vectors_a), len(vectors_b)), dtype=np.float64)

    lengths = {len(v) for v in vectors_a} | {len(v) for v in vectors_b}
    if len(lengths) > 1:
        ordered = sorted(lengths)
        raise DimensionMismatch(ordered[0], ordered[-1])
    if 0 in lengths:
        raise DimensionMismatch(0, 0)

    matrix_a = _scaled_rows(np.array(vectors_a, dtype=np.float64), "first")
    matrix_b = _scaled_rows(np.array(vectors_b, dtype=np.float64), "second")

    normalized_a = matrix_a / np.linalg.norm(matrix_a, axis=1)[:, np.newaxis]
    normalized_b = matrix_b / np.linalg.norm(matrix_b, axis=1)[:, np.newaxis]

    similarity = np.dot(normalized_a, normalized_b.T)
    return np.clip(similarity, -1.0, 1.0)


def validate_embedding(
    embedding: Optional[Vector],
    expected_dimension: Optional[int] = None,
) -> bool:
    """
    Validate an embedding vector.

    Args:
        embedding: Embedding vector to validate
        expected_dimension: Expected dimension (None = any non-zero length)

    Returns:
        True if valid, False otherwise
    """
    if embedding is None:
        return False
    if not isinstance(embedding, (list, tuple, np.ndarray)):
        return False
    if len(embedding) == 0:
        return False
    if expected_dimension is not None and len(embedding) != expected_dimension:
        logger.warning(f"Invalid embedding dimension: {len(embedding)} != {expected_dimension}")
        return False
    # Check for NaN or Inf values
    arr = np.array(embedding, dtype=np.float64)
    if not np.all(np.isfinite(arr)):
        logger.warning("Embedding contains NaN or Inf values")
        return False
    return True


def validate_similarity_score(score: Optional[float]) -> bool:
    """
    Validate a similarity score is in valid range.

    Args:
        score: Similarity score to validate

    Returns:
        True if finite and in [-1, 1], False otherwise
    """
    if score is None:
        return False
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    if not np.isfinite(score):
        return False
    if score < -1.0 or score > 1.0:
        logger.warning(f"Similarity score out of range: {score}")
        return False
    return True
