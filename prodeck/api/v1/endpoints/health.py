"""
Health check endpoints.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from prodeck.api.v1.dependencies import get_image_service, get_registry
from prodeck.core.config import settings
from prodeck.services.ai.image_service import ImageService
from prodeck.services.deck.registry import DeckSessionRegistry

router = APIRouter()


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status
    """
    return {
        "status": "healthy",
        "service": "prodeck-api",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@router.get("/health/ready")
async def readiness_check(
    image_service: ImageService = Depends(get_image_service),
    registry: DeckSessionRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """
    Readiness check including configured backends.

    The service is ready when the planner key and at least one image
    backend are configured.
    """
    backends = [model.value for model in image_service.available_models]
    components = {
        "api": "healthy",
        "planner": "healthy" if settings.GOOGLE_API_KEY else "unconfigured",
        "image_backends": "healthy" if backends else "unconfigured",
    }
    ready = all(value == "healthy" for value in components.values())

    return {
        "status": "ready" if ready else "not_ready",
        "components": components,
        "available_image_models": backends,
        "active_sessions": len(registry),
    }
