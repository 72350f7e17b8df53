"""
Exceptions raised by doc_similarity.

Every error carries an optional ``stage`` attribute. The pipeline fills it in
with the stage that failed before re-raising, so callers can tell a broken PDF
from a rate-limited API without parsing messages.
"""

from __future__ import annotations


class DocumentSimilarityError(Exception):
    """Base class for all document similarity errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.stage = None


class DimensionMismatch(DocumentSimilarityError, ValueError):
    """Raised when two compared vectors have different lengths."""

    def __init__(self, len_a: int, len_b: int):
        super().__init__(f"Vector dimension mismatch: {len_a} != {len_b}")
        self.len_a = len_a
        self.len_b = len_b


class DegenerateVector(DocumentSimilarityError, ValueError):
    """Raised when a vector has zero magnitude or holds NaN or Inf values."""

    def __init__(self, which: str = "vector", reason: str = "has zero magnitude"):
        super().__init__(f"Cannot compute cosine similarity: {which} {reason}")
        self.which = which
        self.reason = reason


class InvalidWeights(DocumentSimilarityError, ValueError):
    """Raised when aggregation weights are negative or do not sum to 1.0."""

    def __init__(self, text: float, image: float, reason: str = "must sum to 1.0"):
        super().__init__(f"Invalid weights (text={text}, image={image}): {reason}")
        self.text = text
        self.image = image


class ExtractionError(DocumentSimilarityError):
    """Raised when a document cannot be read or parsed."""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.reason = message


class ProviderError(DocumentSimilarityError):
    """
    Raised when a remote embedding or vision provider fails.

    ``status`` is the HTTP status code when the service answered, or None
    for network failures and timeouts.
    """

    def __init__(self, status: int | None, message: str, provider: str = "provider"):
        status_label = status if status is not None else "n/a"
        super().__init__(f"{provider} failed (status={status_label}): {message}")
        self.status = status
        self.reason = message
        self.provider = provider

    @property
    def is_retryable(self) -> bool:
        """True for rate limits, server errors and network failures."""
        return self.status is None or self.status == 429 or self.status >= 500


class ComparisonCancelled(DocumentSimilarityError):
    """Raised when the caller's cancel event is set mid-comparison."""

    def __init__(self, message: str = "Comparison cancelled by caller"):
        super().__init__(message)
