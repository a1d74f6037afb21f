"""
AI service module for ProDeck slide planning and image generation.
"""
from .base import (
    AIProviderError,
    ImageModel,
    NoImageGeneratedError,
    ProviderNotConfiguredError,
    RateLimitError,
)
from .image_service import ImageService, create_image_service

__all__ = [
    # Base types
    "AIProviderError",
    "ImageModel",
    "NoImageGeneratedError",
    "ProviderNotConfiguredError",
    "RateLimitError",
    # Core services
    "ImageService",
    "create_image_service",
]
