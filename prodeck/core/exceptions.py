"""
Custom exceptions for the application.
"""
from typing import Any, Dict, Optional


class ProDeckException(Exception):
    """Base exception for all ProDeck exceptions."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(ProDeckException):
    """Validation error exception."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, status_code=422, details=details)


class ConfigurationError(ProDeckException):
    """Missing or inconsistent configuration."""

    def __init__(self, message: str):
        super().__init__(message, status_code=500)


class DeckNotFoundError(ProDeckException):
    """Deck session not found exception."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Deck session {session_id} not found",
            status_code=404,
            details={"session_id": session_id},
        )


class SlideNotFoundError(ProDeckException):
    """Slide position not present in the deck."""

    def __init__(self, position: int):
        super().__init__(
            f"Slide {position} not found",
            status_code=404,
            details={"position": position},
        )


class StaleDeckError(ProDeckException):
    """The deck passed in is no longer the orchestrator's current deck."""

    def __init__(self, deck_id: str):
        super().__init__(
            f"Deck {deck_id} has been discarded",
            status_code=409,
            details={"deck_id": deck_id},
        )


class InvalidSlideState(ProDeckException):
    """Requested transition is not allowed from the slide's current state."""

    def __init__(self, position: int, state: str, action: str):
        super().__init__(
            f"Cannot {action} slide {position} while it is {state}",
            status_code=409,
            details={"position": position, "state": state, "action": action},
        )


class PlanningFailed(ProDeckException):
    """Planner call failed or timed out."""

    def __init__(self, message: str):
        super().__init__(f"Deck planning failed: {message}", status_code=502)


class SlideGenerationFailed(ProDeckException):
    """Image generation failed for a single slide."""

    def __init__(self, position: int, message: str):
        super().__init__(
            f"Slide {position} generation failed: {message}",
            status_code=502,
            details={"position": position},
        )


class SlideEditFailed(ProDeckException):
    """Image edit failed for a single slide; its previous image is kept."""

    def __init__(self, position: int, message: str):
        super().__init__(
            f"Slide {position} edit failed: {message}",
            status_code=502,
            details={"position": position},
        )


class InvalidPackage(ProDeckException):
    """Import payload is not a readable zip archive."""

    def __init__(self, message: str = "Not a valid presentation package"):
        super().__init__(message, status_code=400)


class FileTooLargeError(ProDeckException):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, filename: str, limit_mb: int, field: Optional[str] = None):
        details: Dict[str, Any] = {"filename": filename, "limit_mb": limit_mb}
        if field:
            details["field"] = field
        super().__init__(
            f"{filename} exceeds maximum allowed size of {limit_mb} MB",
            status_code=413,
            details=details,
        )


class DeckBusyError(ProDeckException):
    """Another batch, edit or retry is already running against the deck."""

    def __init__(self, deck_id: str, operation: str):
        super().__init__(
            f"Deck {deck_id} is busy with {operation}",
            status_code=409,
            details={"deck_id": deck_id, "operation": operation},
        )
