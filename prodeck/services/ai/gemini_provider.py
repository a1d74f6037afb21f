"""
Google Gemini planner and image backend.
"""
import json
from typing import Any, List, Optional, Sequence

import structlog
from google import genai
from google.genai import types
from pydantic import BaseModel, Field, TypeAdapter

from prodeck.core.config import get_settings
from prodeck.domain.schemas.deck import ReferenceAsset, SlideImage, SlideSpec
from prodeck.services.ai import prompts
from prodeck.services.ai.base import (
    AIProviderError,
    CallTiming,
    ImageModel,
    NoImageGeneratedError,
    ProviderNotConfiguredError,
    RateLimitError,
    is_rate_limit,
)

logger = structlog.get_logger(__name__)
settings = get_settings()


class PlannedSlide(BaseModel):
    """Planner response item, named the way the model is asked to answer."""
    slideNumber: int
    title: str
    visualPrompt: str = Field(..., description=prompts.VISUAL_PROMPT_DESCRIPTION)


_planned_slides = TypeAdapter(List[PlannedSlide])


def create_gemini_client(api_key: Optional[str] = None) -> genai.Client:
    """Create a Gemini client, failing early when no key is configured."""
    api_key = api_key or settings.GOOGLE_API_KEY
    if not api_key:
        raise ProviderNotConfiguredError(ImageModel.GEMINI, "GOOGLE_API_KEY")
    return genai.Client(api_key=api_key)


def asset_part(asset: ReferenceAsset) -> types.Part:
    """Inline part for an image or binary document, text part for text documents."""
    if asset.is_text:
        return types.Part.from_text(
            text=prompts.text_document_part(asset.filename, asset.text())
        )
    return types.Part.from_bytes(data=asset.data, mime_type=asset.mime_type)


def extract_image(response: Any) -> Optional[SlideImage]:
    """First inline image of the first candidate, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return SlideImage(data=inline.data, mime_type=inline.mime_type or "image/png")
    return None


class GeminiPlanner:
    """Plans the deck structure with a JSON-constrained Gemini model."""

    def __init__(self, client: Optional[genai.Client] = None, model: Optional[str] = None):
        self.client = client or create_gemini_client()
        self.model = model or settings.PLANNER_MODEL

    async def plan(
        self,
        brief: str,
        style_assets: Sequence[ReferenceAsset],
        content_assets: Sequence[ReferenceAsset],
        count: int,
    ) -> List[SlideSpec]:
        """Plans the deck from the brief, style references and context documents."""
        contents: List[Any] = [prompts.planner_prompt(brief, count)]
        contents.extend(
            types.Part.from_bytes(data=asset.data, mime_type=asset.mime_type)
            for asset in style_assets
        )
        contents.extend(asset_part(asset) for asset in content_assets)

        timing = CallTiming.start("plan")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=list[PlannedSlide],
                ),
            )
        except Exception as e:
            if is_rate_limit(e):
                logger.error("gemini_rate_limit", operation="plan", error=str(e))
                raise RateLimitError(f"Gemini rate limit exceeded: {e}") from e
            logger.error("gemini_planning_error", error=str(e))
            raise

        raw = response.parsed
        if raw is None:
            try:
                raw = json.loads(response.text or "")
            except ValueError as e:
                logger.error("gemini_plan_parse_error", error=str(e))
                raise AIProviderError(f"Planner returned invalid JSON: {e}") from e

        planned = _planned_slides.validate_python(raw)
        logger.info(
            "gemini_planning_complete",
            model=self.model,
            requested=count,
            returned=len(planned),
            latency_ms=timing.latency_ms,
        )
        return [
            SlideSpec(position=index, title=item.title, visual_prompt=item.visualPrompt)
            for index, item in enumerate(planned, start=1)
        ]


class GeminiImageGenerator:
    """Generates and edits slide images with the Gemini image model."""

    def __init__(self, client: Optional[genai.Client] = None, model: Optional[str] = None):
        self.client = client or create_gemini_client()
        self.model = model or settings.GEMINI_IMAGE_MODEL

    async def generate(
        self,
        prompt: str,
        style_assets: Sequence[ReferenceAsset],
    ) -> SlideImage:
        """Generates a single slide image based on the visual prompt and references."""
        parts = [types.Part.from_text(text=prompts.generation_prompt(prompt))]
        parts.extend(
            types.Part.from_bytes(data=asset.data, mime_type=asset.mime_type)
            for asset in style_assets
        )
        return await self._render("generate", parts)

    async def edit(self, image: SlideImage, instruction: str) -> SlideImage:
        """Edits a slide image based on user instruction."""
        parts = [
            types.Part.from_text(text=prompts.edit_prompt(instruction)),
            types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
        ]
        return await self._render("edit", parts)

    async def _render(self, operation: str, parts: List[types.Part]) -> SlideImage:
        timing = CallTiming.start(operation)
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
            )
        except Exception as e:
            if is_rate_limit(e):
                logger.error("gemini_rate_limit", operation=operation, error=str(e))
                raise RateLimitError(f"Gemini rate limit exceeded: {e}") from e
            logger.error("gemini_image_error", operation=operation, error=str(e))
            raise

        image = extract_image(response)
        if image is None:
            raise NoImageGeneratedError(
                "No image generated" if operation == "generate" else "No image generated from edit"
            )

        logger.info(
            "gemini_image_complete",
            operation=operation,
            model=self.model,
            mime_type=image.mime_type,
            size_bytes=len(image.data),
            latency_ms=timing.latency_ms,
        )
        return image
