"""
OpenAI-backed embedding providers.

- OpenAITextEmbeddingProvider: text -> embedding via the embeddings API
- OpenAIImageFeatureProvider: image -> tags via a vision chat model,
  tags -> embedding via the text provider

Both use a shared AsyncOpenAI client built from explicit settings; there is
no module-level client or key. SDK errors are mapped to ProviderError after
tenacity has exhausted its retries.
"""

from __future__ import annotations

import base64
import logging
import re

from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from doc_similarity.constants import EMBEDDING_MODEL, MAX_IMAGE_TAGS, VISION_MODEL
from doc_similarity.exceptions import ProviderError
from doc_similarity.models import ImageHandle
from doc_similarity.retry import retry_openai

logger = logging.getLogger(__name__)

TAGGING_PROMPT = (
    "List up to {max_tags} short, lowercase tags that describe the content of this image: "
    "objects, scene, chart or diagram type, visible text topics, colors. "
    "Reply with the tags separated by commas and nothing else."
)

_TAG_SPLIT = re.compile(r"[,\n;]+")
_TAG_PREFIX = re.compile(r"^(?:[-*•]|\d+[.)])\s*")


def get_openai_client(api_key: str | None, base_url: str | None = None) -> AsyncOpenAI:
    """Get an AsyncOpenAI client for the given credentials."""
    if not api_key:
        raise ValueError("OPENAI_API_KEY not set in .env file")
    # tenacity owns the retry policy (see retry_openai)
    return AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)


def parse_tags(content: str, max_tags: int = MAX_IMAGE_TAGS) -> list[str]:
    """
    Parse a vision model reply into a sorted, de-duplicated tag list.

    Sorting makes the embedded tag string independent of the order the
    model happened to list them in.
    """
    tags = set()
    for raw in _TAG_SPLIT.split(content or ""):
        tag = _TAG_PREFIX.sub("", raw.strip()).strip(" .\"'").lower()
        if tag:
            tags.add(tag)
    return sorted(tags)[:max_tags]


def _to_provider_error(error: Exception, provider: str) -> ProviderError:
    if isinstance(error, APIStatusError):
        return ProviderError(error.status_code, error.message, provider=provider)
    return ProviderError(None, str(error), provider=provider)


class OpenAITextEmbeddingProvider:
    """Embeds text with the OpenAI embeddings API."""

    def __init__(self, client: AsyncOpenAI, model: str = EMBEDDING_MODEL):
        self.client = client
        self.model = model

    @retry_openai
    async def _create(self, text: str) -> list[float]:
        response = await self.client.embeddings.create(model=self.model, input=text)
        return response.data[0].embedding

    async def embed(self, text: str) -> list[float]:
        """
        Create an embedding for a single text.

        Raises:
            ValueError: If text is empty
            ProviderError: If the API call fails after retries
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        try:
            return await self._create(text.strip())
        except (APIStatusError, APIConnectionError) as e:
            logger.warning(f"Error creating embedding after retries: {e}")
            raise _to_provider_error(e, f"openai embeddings ({self.model})") from e


class OpenAIImageFeatureProvider:
    """
    Turns an image into a vector by vision tagging.

    The vision model describes the image as a list of tags, and the tag list
    is embedded with the text embedding provider. With temperature 0 the same
    image gets the same tags, and therefore the same vector.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        text_embedder: OpenAITextEmbeddingProvider,
        model: str = VISION_MODEL,
        max_tags: int = MAX_IMAGE_TAGS,
    ):
        self.client = client
        self.text_embedder = text_embedder
        self.model = model
        self.max_tags = max_tags

    @retry_openai
    async def _describe(self, image: ImageHandle) -> str:
        encoded = base64.b64encode(image.data).decode("ascii")
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            max_tokens=200,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": TAGGING_PROMPT.format(max_tags=self.max_tags)},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:{image.mime_type};base64,{encoded}",
                                "detail": "low",
                            },
                        },
                    ],
                }
            ],
        )
        return response.choices[0].message.content or ""

    async def tag(self, image: ImageHandle) -> list[str]:
        """
        Ask the vision model for tags describing the image.

        Raises:
            ProviderError: If the call fails or the reply holds no tags
        """
        provider = f"openai vision ({self.model})"
        try:
            content = await self._describe(image)
        except (APIStatusError, APIConnectionError) as e:
            logger.warning(f"Error tagging image {image.index} of {image.source}: {e}")
            raise _to_provider_error(e, provider) from e

        tags = parse_tags(content, self.max_tags)
        if not tags:
            raise ProviderError(None, "vision model returned no tags", provider=provider)
        logger.debug(f"Tagged image {image.index} of {image.source}: {', '.join(tags)}")
        return tags

    async def embed(self, image: ImageHandle) -> list[float]:
        tags = await self.tag(image)
        return await self.text_embedder.embed(", ".join(tags))


def build_openai_providers(
    api_key: str | None,
    base_url: str | None = None,
    embedding_model: str = EMBEDDING_MODEL,
    vision_model: str = VISION_MODEL,
) -> tuple[OpenAITextEmbeddingProvider, OpenAIImageFeatureProvider]:
    """Build text and image providers sharing one AsyncOpenAI client."""
    client = get_openai_client(api_key, base_url)
    text_embedder = OpenAITextEmbeddingProvider(client, model=embedding_model)
    image_embedder = OpenAIImageFeatureProvider(client, text_embedder, model=vision_model)
    return text_embedder, image_embedder
