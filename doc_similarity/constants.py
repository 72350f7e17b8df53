"""
Constants for doc_similarity package.

Centralizes magic numbers and configuration defaults.
"""

# Score aggregation defaults
DEFAULT_TEXT_WEIGHT = 0.7
DEFAULT_IMAGE_WEIGHT = 0.3
WEIGHT_SUM_TOLERANCE = 1e-9
EMPTY_IMAGE_SCORE = 1.0  # No images on either side => treat as fully similar

# Interpretation thresholds for the final score
NEAR_DUPLICATE_THRESHOLD = 0.95
HIGHLY_SIMILAR_THRESHOLD = 0.80
RELATED_THRESHOLD = 0.60

# Embedding defaults
EMBEDDING_MODEL = "text-embedding-3-small"
VISION_MODEL = "gpt-4o-mini"
MAX_IMAGE_TAGS = 25

# text-embedding-3-small accepts 8191 tokens; ~4 chars per token
MAX_TEXT_CHARS = 30000

# Image extraction
MAX_IMAGE_EDGE = 1024  # pixels, long edge sent to the vision model
MIN_IMAGE_EDGE = 16  # pixels, smaller images are icons/bullets

# Concurrency
DEFAULT_MAX_CONCURRENCY = 8
