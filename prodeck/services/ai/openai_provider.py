"""
OpenAI image backend.
"""
import base64
from typing import Any, Optional, Sequence

import httpx
import structlog
from openai import AsyncOpenAI

from prodeck.core.config import get_settings
from prodeck.domain.schemas.deck import ReferenceAsset, SlideImage
from prodeck.services.ai import prompts
from prodeck.services.ai.base import (
    CallTiming,
    ImageModel,
    NoImageGeneratedError,
    ProviderNotConfiguredError,
    RateLimitError,
    is_rate_limit,
)

logger = structlog.get_logger(__name__)
settings = get_settings()


class OpenAIImageGenerator:
    """Generates and edits slide images with OpenAI's image models."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        size: Optional[str] = None,
        quality: Optional[str] = None,
    ):
        if client is None:
            if not settings.OPENAI_API_KEY:
                raise ProviderNotConfiguredError(ImageModel.OPENAI, "OPENAI_API_KEY")
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self.client = client
        self.model = model or settings.OPENAI_IMAGE_MODEL
        self.size = size or settings.OPENAI_IMAGE_SIZE
        self.quality = quality or settings.OPENAI_IMAGE_QUALITY

    async def generate(
        self,
        prompt: str,
        style_assets: Sequence[ReferenceAsset],
    ) -> SlideImage:
        """Generates a slide image; reference images only shape the prompt text."""
        timing = CallTiming.start("generate")
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompts.openai_generation_prompt(prompt, bool(style_assets)),
                n=1,
                size=self.size,
                quality=self.quality,
            )
        except Exception as e:
            self._raise_provider_error("generate", e)

        image = await self._extract_image(response, "No image generated from OpenAI")
        logger.info(
            "openai_image_complete",
            operation="generate",
            model=self.model,
            size_bytes=len(image.data),
            latency_ms=timing.latency_ms,
        )
        return image

    async def edit(self, image: SlideImage, instruction: str) -> SlideImage:
        """Edits a slide image through the multipart edits endpoint."""
        extension = "jpg" if image.mime_type == "image/jpeg" else "png"
        timing = CallTiming.start("edit")
        try:
            response = await self.client.images.edit(
                model=self.model,
                image=(f"slide.{extension}", image.data, image.mime_type),
                prompt=prompts.openai_edit_prompt(instruction),
                size=self.size,
            )
        except Exception as e:
            self._raise_provider_error("edit", e)

        edited = await self._extract_image(response, "No image generated from OpenAI edit")
        logger.info(
            "openai_image_complete",
            operation="edit",
            model=self.model,
            size_bytes=len(edited.data),
            latency_ms=timing.latency_ms,
        )
        return edited

    async def _extract_image(self, response: Any, missing_message: str) -> SlideImage:
        items = getattr(response, "data", None) or []
        if not items:
            raise NoImageGeneratedError(missing_message)

        item = items[0]
        if getattr(item, "b64_json", None):
            return SlideImage(data=base64.b64decode(item.b64_json), mime_type="image/png")
        if getattr(item, "url", None):
            return await fetch_remote_image(item.url)

        raise NoImageGeneratedError(missing_message)

    @staticmethod
    def _raise_provider_error(operation: str, error: Exception) -> None:
        if is_rate_limit(error):
            logger.error("openai_rate_limit", operation=operation, error=str(error))
            raise RateLimitError(f"OpenAI rate limit exceeded: {error}") from error
        logger.error("openai_image_error", operation=operation, error=str(error))
        raise error


async def fetch_remote_image(url: str, client: Optional[httpx.AsyncClient] = None) -> SlideImage:
    """Download an image returned by URL instead of inline base64."""
    if client is None:
        async with httpx.AsyncClient(timeout=settings.REMOTE_IMAGE_TIMEOUT_SECONDS) as owned:
            return await fetch_remote_image(url, owned)

    response = await client.get(url)
    response.raise_for_status()
    mime_type = response.headers.get("content-type", "image/png").split(";", 1)[0].strip()
    if not mime_type.startswith("image/"):
        mime_type = "image/png"
    return SlideImage(data=response.content, mime_type=mime_type)
