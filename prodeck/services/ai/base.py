"""
Shared types and errors for the generation backends.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class ImageModel(str, Enum):
    """Available image generation backends."""
    GEMINI = "gemini"
    OPENAI = "openai"


@dataclass
class CallTiming:
    """Latency bookkeeping for a single backend call."""
    operation: str
    started_at: float

    @classmethod
    def start(cls, operation: str) -> "CallTiming":
        return cls(operation=operation, started_at=time.time())

    @property
    def latency_ms(self) -> int:
        return int((time.time() - self.started_at) * 1000)


class AIProviderError(Exception):
    """Base exception for AI provider errors."""
    pass


class RateLimitError(AIProviderError):
    """Raised when rate limit is hit."""
    pass


class NoImageGeneratedError(AIProviderError):
    """Raised when a response carries no image payload."""
    pass


class ProviderNotConfiguredError(AIProviderError):
    """Raised when the selected backend has no credentials."""

    def __init__(self, model: ImageModel, setting: Optional[str] = None):
        hint = f" (set {setting})" if setting else ""
        super().__init__(f"Image backend '{model.value}' is not configured{hint}")
        self.model = model


def is_rate_limit(error: Exception) -> bool:
    """Best-effort detection of provider rate limiting."""
    text = str(error).lower()
    return "rate_limit" in text or "rate limit" in text or "429" in text or "resource_exhausted" in text
