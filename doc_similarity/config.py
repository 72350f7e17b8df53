"""
Configuration management for doc_similarity.

Loads environment variables and provides configuration defaults.
The pipeline never reads these getters itself: callers build a
SimilarityConfig (usually via SimilarityConfig.from_env) and inject it.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from doc_similarity.constants import (
    DEFAULT_MAX_CONCURRENCY,
    EMBEDDING_MODEL,
    EMPTY_IMAGE_SCORE,
    MAX_IMAGE_EDGE,
    MAX_TEXT_CHARS,
    MIN_IMAGE_EDGE,
    VISION_MODEL,
)
from doc_similarity.similarity.aggregate import (
    DEFAULT_WEIGHTS,
    AggregationWeights,
    ImageAggregation,
)

# Load environment variables from .env file
load_dotenv()


# OpenAI configuration
def get_openai_api_key() -> str:
    """Get OpenAI API key from environment."""
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError("OPENAI_API_KEY not set in .env file")
    return key


def get_openai_base_url() -> Optional[str]:
    """Get optional OpenAI-compatible endpoint (None = api.openai.com)."""
    return os.getenv("OPENAI_BASE_URL", "").strip() or None


def get_embedding_model() -> str:
    """Get embedding model name from environment or default."""
    return os.getenv("DOC_SIMILARITY_EMBEDDING_MODEL", EMBEDDING_MODEL)


def get_vision_model() -> str:
    """Get vision tagging model name from environment or default."""
    return os.getenv("DOC_SIMILARITY_VISION_MODEL", VISION_MODEL)


def get_max_concurrency() -> int:
    """Get the cap on concurrent remote calls from environment or default."""
    value = os.getenv("DOC_SIMILARITY_MAX_CONCURRENCY", "").strip()
    if not value:
        return DEFAULT_MAX_CONCURRENCY
    concurrency = int(value)
    if concurrency < 1:
        raise ValueError(f"DOC_SIMILARITY_MAX_CONCURRENCY must be >= 1, got {concurrency}")
    return concurrency


def get_cache_path() -> Optional[Path]:
    """Get embedding cache file path (None = no cache)."""
    value = os.getenv("DOC_SIMILARITY_CACHE", "").strip()
    return Path(value) if value else None


@dataclass(frozen=True)
class SimilarityConfig:
    """
    Everything the similarity pipeline needs, passed in at construction.

    Timeouts are in seconds and apply to each external call individually;
    None disables the timeout for that kind of call.
    """

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    embedding_model: str = EMBEDDING_MODEL
    vision_model: str = VISION_MODEL
    weights: AggregationWeights = field(default_factory=lambda: DEFAULT_WEIGHTS)
    image_strategy: ImageAggregation = ImageAggregation.MEAN
    empty_image_score: float = EMPTY_IMAGE_SCORE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    extraction_timeout: Optional[float] = None
    embedding_timeout: Optional[float] = None
    vision_timeout: Optional[float] = None
    max_text_chars: int = MAX_TEXT_CHARS
    max_image_edge: int = MAX_IMAGE_EDGE
    min_image_edge: int = MIN_IMAGE_EDGE
    skip_degenerate_images: bool = False
    cache_path: Optional[Path] = None

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        # Accept plain strings / dicts from CLI and env parsing
        object.__setattr__(self, "image_strategy", ImageAggregation(self.image_strategy))
        object.__setattr__(self, "weights", AggregationWeights.coerce(self.weights))

    @classmethod
    def from_env(cls, **overrides) -> "SimilarityConfig":
        """
        Build a config from environment variables, then apply overrides.

        Raises:
            ValueError: If OPENAI_API_KEY is not set and no api_key override is given
        """
        values = {
            "embedding_model": get_embedding_model(),
            "vision_model": get_vision_model(),
            "base_url": get_openai_base_url(),
            "max_concurrency": get_max_concurrency(),
            "cache_path": get_cache_path(),
        }
        if "api_key" not in overrides:
            values["api_key"] = get_openai_api_key()
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **changes) -> "SimilarityConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
