"""
Simple embedding cache to avoid re-computing embeddings from OpenAI.

This is a lightweight cache that stores embeddings in JSON format.
Comparing one document against many others re-embeds the same text and the
same images over and over; the cache turns those repeats into lookups.

Cache Structure:
- JSON file: {key: {embedding: [...], model: str, dimension: int, created_at: str}, ...}
- Key: "<kind>:<sha256 of content>", e.g. "text:9f86d0..." or "image:2c26b4..."

Usage:
    from doc_similarity.embeddings import CachedEmbeddingProvider, EmbeddingCache

    cache = EmbeddingCache("data/embeddings_cache.json")
    embedder = CachedEmbeddingProvider(text_embedder, cache, kind="text", model=model)
    vector = await embedder.embed("Quarterly report ...")
    cache.save()
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from doc_similarity.models import ImageHandle

logger = logging.getLogger(__name__)


def compute_text_hash(text: str | None) -> str:
    """Compute SHA256 hash of text for change detection."""
    if not text:
        return ""
    normalized = text.strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def cache_key(kind: str, item: str | ImageHandle) -> str:
    """Build the cache key for a text or an image."""
    if isinstance(item, ImageHandle):
        return f"{kind}:{item.content_hash}"
    return f"{kind}:{compute_text_hash(item)}"


class EmbeddingCache:
    """
    Simple JSON-based embedding cache.

    Entries are keyed by content hash, so a changed text or image is simply
    a different key. Entries created with a different model are ignored.
    """

    def __init__(self, cache_file: Path | str, autosave_every: int = 100):
        """
        Initialize embedding cache.

        Args:
            cache_file: Path to JSON cache file
            autosave_every: Write to disk after this many new entries
        """
        self.cache_file = Path(cache_file)
        self.autosave_every = autosave_every
        self._cache: dict[str, dict[str, Any]] = {}
        self._unsaved = 0
        self.hits = 0
        self.misses = 0
        self._load()

    def _load(self):
        """Load cache from JSON file."""
        if self.cache_file.exists():
            try:
                with open(self.cache_file) as f:
                    self._cache = json.load(f)
                logger.info(f"Loaded {len(self._cache)} embeddings from cache")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Could not load cache, starting empty: {e}")
                self._cache = {}
        else:
            self._cache = {}

    def _save(self):
        """Save cache to JSON file."""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.cache_file.with_suffix(self.cache_file.suffix + ".tmp")
        with open(tmp_file, "w") as f:
            json.dump(self._cache, f)
        tmp_file.replace(self.cache_file)
        self._unsaved = 0

    def get(self, key: str, model: str) -> list[float] | None:
        """
        Get embedding from cache.

        Args:
            key: Cache key (see cache_key)
            model: Embedding model name; entries from other models are misses

        Returns:
            Embedding vector if found, None otherwise
        """
        entry = self._cache.get(key)
        if not entry or entry.get("model") != model:
            self.misses += 1
            return None
        self.hits += 1
        return entry.get("embedding")

    def set(self, key: str, embedding: list[float], model: str):
        """
        Store embedding in cache.

        Args:
            key: Cache key
            embedding: Embedding vector
            model: Embedding model name
        """
        self._cache[key] = {
            "embedding": [float(x) for x in embedding],
            "model": model,
            "dimension": len(embedding),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self._unsaved += 1
        if self._unsaved >= self.autosave_every:
            self._save()

    def save(self):
        """Explicitly save cache to disk."""
        if self._unsaved:
            self._save()

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        by_kind: dict[str, int] = {}
        for key in self._cache:
            kind = key.split(":", 1)[0]
            by_kind[kind] = by_kind.get(kind, 0) + 1

        return {
            "total": len(self._cache),
            "by_kind": by_kind,
            "hits": self.hits,
            "misses": self.misses,
        }


class CachedEmbeddingProvider:
    """
    Wraps a text or image embedding provider with an EmbeddingCache.

    Provider errors are not cached; they propagate unchanged.
    """

    def __init__(self, provider, cache: EmbeddingCache, kind: str, model: str):
        self.provider = provider
        self.cache = cache
        self.kind = kind
        self.model = model

    async def embed(self, item):
        key = cache_key(self.kind, item)
        embedding = self.cache.get(key, self.model)
        if embedding is not None:
            logger.debug(f"Cache hit for {key[:20]} (model: {self.model})")
            return embedding

        embedding = await self.provider.embed(item)
        self.cache.set(key, list(embedding), self.model)
        return embedding
