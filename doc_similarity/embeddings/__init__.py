"""Embedding providers and caching."""

from doc_similarity.embeddings.cache import (
    CachedEmbeddingProvider,
    EmbeddingCache,
    cache_key,
    compute_text_hash,
)
from doc_similarity.embeddings.openai_client import (
    OpenAIImageFeatureProvider,
    OpenAITextEmbeddingProvider,
    build_openai_providers,
    get_openai_client,
    parse_tags,
)

__all__ = [
    "CachedEmbeddingProvider",
    "EmbeddingCache",
    "cache_key",
    "compute_text_hash",
    "OpenAIImageFeatureProvider",
    "OpenAITextEmbeddingProvider",
    "build_openai_providers",
    "get_openai_client",
    "parse_tags",
]
