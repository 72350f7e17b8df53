"""
Document similarity pipeline.

Compares two PDFs in two independent branches that run concurrently:

    text:   extract text  -> embed both texts    -> cosine similarity
    images: extract images -> feature every image -> cross-product matrix -> aggregate

and blends the two sub-scores with the configured weights. Every external
call (extraction, embedding, tagging) is a suspension point that honors the
caller's cancel event and the per-call timeout from SimilarityConfig.

Usage:
    config = SimilarityConfig.from_env()
    async with SimilarityPipeline(config) as pipeline:
        result = await pipeline.compare("a.pdf", "b.pdf")
    print(result.final_score, result.text_score, result.image_score)
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import contextmanager
from pathlib import Path

from doc_similarity.concurrency import (
    check_cancelled,
    gather_bounded,
    gather_cancelling,
    run_cancellable,
)
from doc_similarity.config import SimilarityConfig
from doc_similarity.embeddings.cache import CachedEmbeddingProvider, EmbeddingCache
from doc_similarity.exceptions import (
    DegenerateVector,
    DocumentSimilarityError,
    ExtractionError,
    ProviderError,
)
from doc_similarity.interfaces import (
    DocumentPath,
    EmbeddingVector,
    ImageExtractor,
    ImageFeatureProvider,
    TextEmbeddingProvider,
    TextExtractor,
)
from doc_similarity.models import DocumentSimilarity, ImageHandle, PipelineStage
from doc_similarity.similarity.aggregate import aggregate_image_pairs, combine, validate_weights
from doc_similarity.similarity.cosine import (
    compute_cross_similarity_matrix,
    cosine_similarity,
    find_degenerate_rows,
)

logger = logging.getLogger(__name__)


@contextmanager
def pipeline_stage(stage: PipelineStage, document: DocumentPath | None = None):
    """
    Tag any DocumentSimilarityError raised inside the block with its stage.

    The error object itself propagates unchanged; only `stage` is filled in,
    and only if an inner block has not already claimed it.
    """
    logger.debug(
        f"Entering stage {stage.value}",
        extra={"stage": stage.value, "document": str(document)},
    )
    try:
        yield
    except DocumentSimilarityError as e:
        if e.stage is None:
            e.stage = stage
        raise


class SimilarityPipeline:
    """
    Orchestrates extractors and embedding providers to score two documents.

    Collaborators left as None are built from the config: PyMuPDF extractors
    and OpenAI providers (which need config.api_key). Weights are validated
    here, before any remote call can be made.
    """

    def __init__(
        self,
        config: SimilarityConfig,
        text_extractor: TextExtractor | None = None,
        image_extractor: ImageExtractor | None = None,
        text_embedder: TextEmbeddingProvider | None = None,
        image_embedder: ImageFeatureProvider | None = None,
    ):
        self.config = config
        self.weights = validate_weights(config.weights)

        if text_extractor is None or image_extractor is None:
            from doc_similarity.extraction.pdf import PDFImageExtractor, PDFTextExtractor

            text_extractor = text_extractor or PDFTextExtractor()
            image_extractor = image_extractor or PDFImageExtractor(
                max_image_edge=config.max_image_edge,
                min_image_edge=config.min_image_edge,
            )

        self.cache: EmbeddingCache | None = None
        if config.cache_path is not None:
            self.cache = EmbeddingCache(config.cache_path)

        self.text_extractor = text_extractor
        self.image_extractor = image_extractor
        self._given_text_embedder = text_embedder
        self._given_image_embedder = image_embedder
        self._owned_client = None
        self._closed = False
        self._build_embedders()

    def _build_embedders(self) -> None:
        """Wire the embedders, creating an OpenAI client for any that were not injected."""
        config = self.config
        text_embedder = self._given_text_embedder
        image_embedder = self._given_image_embedder

        if text_embedder is None or image_embedder is None:
            from doc_similarity.embeddings.openai_client import build_openai_providers

            default_text, default_image = build_openai_providers(
                api_key=config.api_key,
                base_url=config.base_url,
                embedding_model=config.embedding_model,
                vision_model=config.vision_model,
            )
            self._owned_client = default_text.client
            text_embedder = text_embedder or default_text
            image_embedder = image_embedder or default_image

        if self.cache is not None:
            text_embedder = CachedEmbeddingProvider(
                text_embedder, self.cache, kind="text", model=config.embedding_model
            )
            image_embedder = CachedEmbeddingProvider(
                image_embedder,
                self.cache,
                kind="image",
                model=f"{config.vision_model}+{config.embedding_model}",
            )

        self.text_embedder = text_embedder
        self.image_embedder = image_embedder
        self._closed = False

    async def __aenter__(self) -> SimilarityPipeline:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """
        Flush the embedding cache and close the OpenAI client if this pipeline created it.

        A closed pipeline can still be used: the next compare() builds a new client.
        """
        if self.cache is not None:
            self.cache.save()
        if self._owned_client is not None:
            await self._owned_client.close()
            self._owned_client = None
            self._closed = True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def compare(
        self,
        path_a: DocumentPath,
        path_b: DocumentPath,
        cancel_event: asyncio.Event | None = None,
    ) -> DocumentSimilarity:
        """
        Compare two documents.

        Args:
            path_a: First PDF
            path_b: Second PDF
            cancel_event: Optional event; once set, the comparison aborts at the
                next external call with ComparisonCancelled

        Returns:
            DocumentSimilarity with the final score and both sub-scores

        Raises:
            ExtractionError: A document could not be read (error.stage says which step)
            ProviderError: A remote call failed
            DimensionMismatch, DegenerateVector: Unusable vectors came back
            ComparisonCancelled: The cancel event was set
        """
        start = time.perf_counter()
        if self._closed:
            logger.debug("Pipeline was closed, creating a new OpenAI client")
            self._build_embedders()
        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        with pipeline_stage(PipelineStage.START):
            check_cancelled(cancel_event)
            logger.info(f"Comparing {path_a} with {path_b}")

        try:
            text_score, (image_score, pair_count, images_a, images_b) = await gather_cancelling(
                self._text_similarity(path_a, path_b, semaphore, cancel_event),
                self._image_similarity(path_a, path_b, semaphore, cancel_event),
            )
        finally:
            if self.cache is not None:
                self.cache.save()

        with pipeline_stage(PipelineStage.AGGREGATED):
            final_score = combine(text_score, image_score, self.weights)

        duration_ms = (time.perf_counter() - start) * 1000
        result = DocumentSimilarity(
            final_score=final_score,
            text_score=text_score,
            image_score=image_score,
            image_pair_count=pair_count,
            images_a=images_a,
            images_b=images_b,
            weights=self.weights,
            strategy=self.config.image_strategy,
            duration_ms=duration_ms,
        )

        logger.info(
            f"Similarity {final_score:.4f} (text {text_score:.4f}, image {image_score:.4f}, "
            f"{pair_count} image pairs) in {duration_ms:.0f}ms",
            extra={
                "stage": PipelineStage.DONE.value,
                "score": final_score,
                "duration_ms": duration_ms,
            },
        )
        return result

    def compare_sync(self, path_a: DocumentPath, path_b: DocumentPath) -> DocumentSimilarity:
        """Blocking wrapper around compare() for scripts."""

        async def _run() -> DocumentSimilarity:
            async with self:
                return await self.compare(path_a, path_b)

        return asyncio.run(_run())

    # ------------------------------------------------------------------
    # Text branch
    # ------------------------------------------------------------------

    async def _text_similarity(self, path_a, path_b, semaphore, cancel_event) -> float:
        with pipeline_stage(PipelineStage.TEXT_EXTRACTED):
            text_a, text_b = await gather_cancelling(
                self._extract_text(path_a, cancel_event),
                self._extract_text(path_b, cancel_event),
            )

        with pipeline_stage(PipelineStage.TEXT_EMBEDDED):
            vector_a, vector_b = await gather_bounded(
                lambda text: self._embed_text(text, cancel_event),
                [text_a, text_b],
                semaphore=semaphore,
            )

        with pipeline_stage(PipelineStage.AGGREGATED):
            score = cosine_similarity(vector_a, vector_b)
        logger.debug(f"Text similarity: {score:.4f}", extra={"score": score})
        return score

    async def _extract_text(self, path: DocumentPath, cancel_event) -> str:
        timeout = self.config.extraction_timeout
        try:
            text = await run_cancellable(
                asyncio.to_thread(self.text_extractor.extract, path),
                cancel_event,
                timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(path, f"text extraction timed out after {timeout}s") from e

        if not text or not text.strip():
            raise ExtractionError(path, "no extractable text")

        if len(text) > self.config.max_text_chars:
            logger.warning(
                f"Truncating text of {Path(path).name} from {len(text)} to "
                f"{self.config.max_text_chars} chars before embedding",
                extra={"document": str(path)},
            )
            text = text[: self.config.max_text_chars]
        return text

    async def _embed_text(self, text: str, cancel_event) -> EmbeddingVector:
        timeout = self.config.embedding_timeout
        try:
            return await run_cancellable(self.text_embedder.embed(text), cancel_event, timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                None, f"text embedding timed out after {timeout}s", "text embedder"
            ) from e

    # ------------------------------------------------------------------
    # Image branch
    # ------------------------------------------------------------------

    async def _image_similarity(
        self, path_a, path_b, semaphore, cancel_event
    ) -> tuple[float, int, int, int]:
        with pipeline_stage(PipelineStage.IMAGES_EXTRACTED):
            images_a, images_b = await gather_cancelling(
                self._extract_images(path_a, cancel_event),
                self._extract_images(path_b, cancel_event),
            )
        logger.info(f"Found {len(images_a)} image(s) in {path_a} and {len(images_b)} in {path_b}")

        with pipeline_stage(PipelineStage.IMAGES_FEATURED):
            vectors_a, vectors_b = await self._feature_images(
                images_a, images_b, semaphore, cancel_event
            )

        with pipeline_stage(PipelineStage.AGGREGATED):
            if self.config.skip_degenerate_images:
                vectors_a = self._drop_degenerate(vectors_a, path_a)
                vectors_b = self._drop_degenerate(vectors_b, path_b)
                if images_a and images_b and not (vectors_a and vectors_b):
                    empty_path = path_a if not vectors_a else path_b
                    raise DegenerateVector(f"every image vector of {empty_path}")

            matrix = compute_cross_similarity_matrix(vectors_a, vectors_b)
            score = aggregate_image_pairs(
                matrix,
                strategy=self.config.image_strategy,
                empty_score=self.config.empty_image_score,
            )

        logger.debug(
            f"Image similarity: {score:.4f} over {matrix.size} pairs "
            f"({self.config.image_strategy.value})",
            extra={"score": score, "count": int(matrix.size)},
        )
        return score, int(matrix.size), len(images_a), len(images_b)

    async def _extract_images(self, path: DocumentPath, cancel_event) -> list[ImageHandle]:
        timeout = self.config.extraction_timeout
        try:
            images = await run_cancellable(
                asyncio.to_thread(self.image_extractor.extract, path),
                cancel_event,
                timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionError(path, f"image extraction timed out after {timeout}s") from e
        return list(images)

    async def _feature_images(
        self,
        images_a: list[ImageHandle],
        images_b: list[ImageHandle],
        semaphore: asyncio.Semaphore,
        cancel_event,
    ) -> tuple[list[EmbeddingVector], list[EmbeddingVector]]:
        # Nothing to pair: skip the remote calls entirely
        if not images_a or not images_b:
            return [], []

        # One remote call per distinct image, shared by every pair it appears in
        unique: dict[str, ImageHandle] = {}
        for image in images_a + images_b:
            unique.setdefault(image.content_hash, image)
        logger.debug(f"Featuring {len(unique)} distinct image(s)", extra={"count": len(unique)})

        vectors = await gather_bounded(
            lambda image: self._embed_image(image, cancel_event),
            list(unique.values()),
            semaphore=semaphore,
        )
        by_hash = dict(zip(unique.keys(), vectors))
        return (
            [by_hash[image.content_hash] for image in images_a],
            [by_hash[image.content_hash] for image in images_b],
        )

    async def _embed_image(self, image: ImageHandle, cancel_event) -> EmbeddingVector:
        timeout = self.config.vision_timeout
        try:
            return await run_cancellable(self.image_embedder.embed(image), cancel_event, timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                None, f"image tagging timed out after {timeout}s", "image featurer"
            ) from e

    @staticmethod
    def _drop_degenerate(
        vectors: list[EmbeddingVector], path: DocumentPath
    ) -> list[EmbeddingVector]:
        degenerate = set(find_degenerate_rows(vectors))
        if not degenerate:
            return vectors
        logger.warning(
            f"Skipping {len(degenerate)} zero-magnitude image vector(s) from {path}",
            extra={"document": str(path), "count": len(degenerate)},
        )
        return [vec for i, vec in enumerate(vectors) if i not in degenerate]


def compare_documents(
    path_a: DocumentPath,
    path_b: DocumentPath,
    config: SimilarityConfig | None = None,
) -> DocumentSimilarity:
    """One-shot blocking comparison using the default collaborators."""
    pipeline = SimilarityPipeline(config or SimilarityConfig.from_env())
    return pipeline.compare_sync(path_a, path_b)

