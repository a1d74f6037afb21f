"""
Shared dependencies for the v1 endpoints.
"""
from typing import Optional

from prodeck.core.exceptions import ConfigurationError
from prodeck.domain.interfaces.generation import Planner
from prodeck.services.ai.base import ProviderNotConfiguredError
from prodeck.services.ai.image_service import ImageService, create_image_service
from prodeck.services.deck.registry import DeckSessionRegistry

_registry: Optional[DeckSessionRegistry] = None
_image_service: Optional[ImageService] = None


def get_registry() -> DeckSessionRegistry:
    """Process-wide session registry."""
    global _registry
    if _registry is None:
        _registry = DeckSessionRegistry()
    return _registry


def get_image_service() -> ImageService:
    global _image_service
    if _image_service is None:
        _image_service = create_image_service()
    return _image_service


def get_planner() -> Planner:
    """Planner backed by Gemini; requires GOOGLE_API_KEY."""
    from prodeck.services.ai.gemini_provider import GeminiPlanner

    try:
        return GeminiPlanner()
    except ProviderNotConfiguredError as e:
        raise ConfigurationError(str(e)) from e
