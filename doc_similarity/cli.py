"""
Command-line interface for doc_similarity.

Provides shared functionality for:
- Logging setup (console + optional JSON log file)
- Argument parsing for comparison options
- The doc-similarity entry point
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from doc_similarity.config import SimilarityConfig
from doc_similarity.constants import DEFAULT_TEXT_WEIGHT
from doc_similarity.exceptions import DocumentSimilarityError, ProviderError
from doc_similarity.logging import setup_structured_logging, suppress_http_logging
from doc_similarity.models import DocumentSimilarity
from doc_similarity.pipeline import SimilarityPipeline
from doc_similarity.similarity.aggregate import (
    AggregationWeights,
    ImageAggregation,
    validate_weights,
)


def setup_logging(
    script_name: str,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Set up logging for the package and a script.

    Args:
        script_name: Name of the script (for log file naming)
        verbose: If True, log at DEBUG instead of INFO
        log_dir: Directory for JSON log files (None = console only)

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    setup_structured_logging("doc_similarity", level=level, log_dir=log_dir, json_output=True)
    suppress_http_logging()
    return logging.getLogger(f"doc_similarity.{script_name}")


def add_comparison_arguments(parser: argparse.ArgumentParser):
    """
    Add the comparison options to an ArgumentParser.

    Args:
        parser: argparse.ArgumentParser instance
    """
    parser.add_argument("document_a", type=Path, help="First PDF")
    parser.add_argument("document_b", type=Path, help="Second PDF")
    parser.add_argument(
        "--text-weight",
        type=float,
        default=DEFAULT_TEXT_WEIGHT,
        help=(
            "Weight of the text score; the image score gets the rest "
            f"(default: {DEFAULT_TEXT_WEIGHT})"
        ),
    )
    parser.add_argument(
        "--image-strategy",
        choices=[strategy.value for strategy in ImageAggregation],
        default=ImageAggregation.MEAN.value,
        help="How image pair scores are aggregated (default: mean)",
    )
    parser.add_argument(
        "--empty-image-score",
        type=float,
        default=None,
        help="Image score when there are no image pairs (default: 1.0)",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Maximum concurrent API calls (default: DOC_SIMILARITY_MAX_CONCURRENCY or 8)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Timeout in seconds for each extraction and API call (default: none)",
    )
    parser.add_argument("--cache", type=Path, default=None, help="JSON embedding cache file")
    parser.add_argument(
        "--skip-degenerate-images",
        action="store_true",
        help="Drop images whose feature vector is all zeros instead of failing",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for JSON log files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_config(args: argparse.Namespace) -> SimilarityConfig:
    """Turn parsed arguments into a SimilarityConfig, on top of the environment."""
    overrides = {
        "weights": AggregationWeights.from_text_weight(args.text_weight),
        "image_strategy": ImageAggregation(args.image_strategy),
        "skip_degenerate_images": args.skip_degenerate_images,
    }
    if args.empty_image_score is not None:
        overrides["empty_image_score"] = args.empty_image_score
    if args.max_concurrency is not None:
        overrides["max_concurrency"] = args.max_concurrency
    if args.timeout is not None:
        overrides["extraction_timeout"] = args.timeout
        overrides["embedding_timeout"] = args.timeout
        overrides["vision_timeout"] = args.timeout
    if args.cache is not None:
        overrides["cache_path"] = args.cache
    return SimilarityConfig.from_env(**overrides)


def format_result(result: DocumentSimilarity) -> str:
    """Human-readable summary of a comparison."""
    lines = [
        f"Similarity:       {result.final_score:.4f} ({result.interpretation})",
        f"  Text score:     {result.text_score:.4f} (weight {result.weights.text:.2f})",
        f"  Image score:    {result.image_score:.4f} (weight {result.weights.image:.2f})",
        f"  Image pairs:    {result.image_pair_count} "
        f"({result.images_a} x {result.images_b}, {result.strategy.value})",
    ]
    if result.used_empty_image_default:
        lines.append("  (no image pairs to compare; default image score applied)")
    return "\n".join(lines)


async def _compare(
    config: SimilarityConfig, document_a: Path, document_b: Path
) -> DocumentSimilarity:
    async with SimilarityPipeline(config) as pipeline:
        return await pipeline.compare(document_a, document_b)


def compare_main(argv: Optional[List[str]] = None) -> int:
    """
    Run a comparison from command-line arguments.

    Returns:
        Process exit code (0 success, 1 comparison failed, 2 bad configuration)
    """
    parser = argparse.ArgumentParser(
        prog="doc-similarity",
        description="Score the similarity of two PDF documents by text and images",
    )
    add_comparison_arguments(parser)
    args = parser.parse_args(argv)

    logger = setup_logging("compare", verbose=args.verbose, log_dir=args.log_dir)

    try:
        config = build_config(args)
        validate_weights(config.weights)
    except ValueError as e:
        logger.error(str(e))
        return 2

    try:
        result = asyncio.run(_compare(config, args.document_a, args.document_b))
    except ProviderError as e:
        stage = e.stage.value if e.stage is not None else "unknown"
        retry_hint = " (retryable)" if e.is_retryable else ""
        logger.error(f"Comparison failed at stage {stage}: {e}{retry_hint}")
        return 1
    except DocumentSimilarityError as e:
        stage = e.stage.value if e.stage is not None else "unknown"
        logger.error(f"Comparison failed at stage {stage}: {e}")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_result(result))
    return 0


# CLI entry point for pyproject.toml [project.scripts]


def run_compare():
    """Entry point for doc-similarity command."""
    sys.exit(compare_main(sys.argv[1:]))
