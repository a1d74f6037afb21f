"""
Unified image service that delegates to the selected backend.
"""
import asyncio
from typing import Awaitable, Dict, Mapping, Optional, Sequence, TypeVar

import structlog

from prodeck.core.config import get_settings
from prodeck.domain.interfaces.generation import ImageGenerator
from prodeck.domain.schemas.deck import ReferenceAsset, SlideImage
from prodeck.services.ai.base import AIProviderError, ImageModel, ProviderNotConfiguredError

logger = structlog.get_logger(__name__)
settings = get_settings()

T = TypeVar("T")


class ImageService:
    """
    Routes generate/edit calls to one of several interchangeable backends.

    The selected backend is a tag (`ImageModel`), not a subclass; every call
    is bounded by a fixed timeout and a timeout surfaces as an
    `AIProviderError` like any other backend failure.
    """

    def __init__(
        self,
        backends: Mapping[ImageModel, ImageGenerator],
        model: ImageModel = ImageModel.GEMINI,
        timeout: Optional[float] = None,
    ):
        self.backends: Dict[ImageModel, ImageGenerator] = dict(backends)
        self.model = ImageModel(model)
        self.timeout = timeout if timeout is not None else settings.IMAGE_TIMEOUT_SECONDS

    @property
    def available_models(self) -> list[ImageModel]:
        return list(self.backends)

    def with_model(self, model: ImageModel | str) -> "ImageService":
        """Same backends and timeout, different selection."""
        return ImageService(self.backends, model=ImageModel(model), timeout=self.timeout)

    def backend(self, model: Optional[ImageModel] = None) -> ImageGenerator:
        model = model or self.model
        try:
            return self.backends[model]
        except KeyError:
            raise ProviderNotConfiguredError(model) from None

    async def generate(
        self,
        prompt: str,
        style_assets: Sequence[ReferenceAsset],
        model: Optional[ImageModel] = None,
    ) -> SlideImage:
        """Generate a slide image using the selected model."""
        backend = self.backend(model)
        return await self._bounded("generate", backend.generate(prompt, style_assets))

    async def edit(
        self,
        image: SlideImage,
        instruction: str,
        model: Optional[ImageModel] = None,
    ) -> SlideImage:
        """Edit a slide image using the selected model."""
        backend = self.backend(model)
        return await self._bounded("edit", backend.edit(image, instruction))

    async def _bounded(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "image_request_timeout",
                operation=operation,
                model=self.model.value,
                timeout_seconds=self.timeout,
            )
            raise AIProviderError(f"Request timed out after {self.timeout:g}s") from e


def create_image_service(model: Optional[ImageModel | str] = None) -> ImageService:
    """Build the service from configured credentials; unconfigured backends are left out."""
    from prodeck.services.ai.gemini_provider import GeminiImageGenerator
    from prodeck.services.ai.openai_provider import OpenAIImageGenerator

    backends: Dict[ImageModel, ImageGenerator] = {}
    if settings.GOOGLE_API_KEY:
        backends[ImageModel.GEMINI] = GeminiImageGenerator()
    if settings.OPENAI_API_KEY:
        backends[ImageModel.OPENAI] = OpenAIImageGenerator()

    if not backends:
        logger.warning("no_image_backends_configured")

    return ImageService(backends, model=ImageModel(model or settings.DEFAULT_IMAGE_MODEL))
