"""
Retry utilities for external API calls.

Provides decorators for resilient calls to OpenAI. These wrap the
collaborators only; the similarity core never retries on its own.
"""

import logging
from typing import Callable, TypeVar

from openai import APIConnectionError, APITimeoutError, InternalServerError, RateLimitError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Common transient exceptions
TRANSIENT_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
)

OPENAI_TRANSIENT = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


def retry_openai(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator for retrying OpenAI API calls with exponential backoff.

    Works on both plain functions and coroutines.

    Retries on:
    - Rate limits (429)
    - Server errors (5xx)
    - Connection errors
    - Timeouts

    Example:
        @retry_openai
        async def create_embedding(text: str) -> list[float]:
            return await client.embeddings.create(...)
    """
    return retry(
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        retry=retry_if_exception_type(TRANSIENT_EXCEPTIONS + OPENAI_TRANSIENT),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )(func)
