"""
Standardized error message catalog for ProDeck.

Maps the exception taxonomy onto stable error codes so API clients can
branch on a code instead of parsing messages.
"""
from enum import Enum
from typing import Dict, Optional, Type

from prodeck.core.exceptions import (
    ConfigurationError,
    DeckBusyError,
    DeckNotFoundError,
    FileTooLargeError,
    InvalidPackage,
    InvalidSlideState,
    PlanningFailed,
    ProDeckException,
    SlideEditFailed,
    SlideGenerationFailed,
    SlideNotFoundError,
    StaleDeckError,
    ValidationError,
)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Validation Errors (VAL_*)
    VAL_INVALID_INPUT = "VAL_001"
    VAL_FILE_TOO_LARGE = "VAL_002"

    # Deck Errors (DECK_*)
    DECK_NOT_FOUND = "DECK_001"
    DECK_SLIDE_NOT_FOUND = "DECK_002"
    DECK_STALE = "DECK_003"
    DECK_INVALID_STATE_TRANSITION = "DECK_004"
    DECK_BUSY = "DECK_005"

    # Generation Errors (GEN_*)
    GEN_PLANNING_FAILED = "GEN_001"
    GEN_SLIDE_FAILED = "GEN_002"
    GEN_EDIT_FAILED = "GEN_003"

    # Package Errors (PKG_*)
    PKG_INVALID = "PKG_001"

    # System Errors (SYS_*)
    SYS_INTERNAL_ERROR = "SYS_001"
    SYS_CONFIGURATION_ERROR = "SYS_002"


class ErrorMessages:
    """Centralized error message definitions."""

    _messages: Dict[ErrorCode, str] = {
        ErrorCode.VAL_INVALID_INPUT: "Invalid input provided",
        ErrorCode.VAL_FILE_TOO_LARGE: "File size exceeds maximum allowed size of {limit_mb} MB",
        ErrorCode.DECK_NOT_FOUND: "Deck not found",
        ErrorCode.DECK_SLIDE_NOT_FOUND: "Slide not found",
        ErrorCode.DECK_STALE: "This deck has been replaced. Reload and try again",
        ErrorCode.DECK_INVALID_STATE_TRANSITION: "This action is not available for the slide right now",
        ErrorCode.DECK_BUSY: "The deck is still being generated. Wait for it to finish",
        ErrorCode.GEN_PLANNING_FAILED: "Could not plan the deck. Please try again",
        ErrorCode.GEN_SLIDE_FAILED: "Slide generation failed",
        ErrorCode.GEN_EDIT_FAILED: "Slide edit failed. The previous image was kept",
        ErrorCode.PKG_INVALID: "Failed to load PPTX. Ensure it is a valid PowerPoint file",
        ErrorCode.SYS_INTERNAL_ERROR: "An internal error occurred",
        ErrorCode.SYS_CONFIGURATION_ERROR: "Service is not configured correctly",
    }

    @classmethod
    def get(cls, code: ErrorCode, **kwargs) -> str:
        """
        Get error message for a given error code.

        Args:
            code: Error code
            **kwargs: Additional context for formatting

        Returns:
            Formatted error message
        """
        base_message = cls._messages.get(code, "An error occurred")

        if kwargs:
            try:
                return base_message.format(**kwargs)
            except KeyError:
                return base_message

        return base_message


_EXCEPTION_CODES: Dict[Type[ProDeckException], ErrorCode] = {
    ValidationError: ErrorCode.VAL_INVALID_INPUT,
    FileTooLargeError: ErrorCode.VAL_FILE_TOO_LARGE,
    DeckNotFoundError: ErrorCode.DECK_NOT_FOUND,
    SlideNotFoundError: ErrorCode.DECK_SLIDE_NOT_FOUND,
    StaleDeckError: ErrorCode.DECK_STALE,
    InvalidSlideState: ErrorCode.DECK_INVALID_STATE_TRANSITION,
    DeckBusyError: ErrorCode.DECK_BUSY,
    PlanningFailed: ErrorCode.GEN_PLANNING_FAILED,
    SlideGenerationFailed: ErrorCode.GEN_SLIDE_FAILED,
    SlideEditFailed: ErrorCode.GEN_EDIT_FAILED,
    InvalidPackage: ErrorCode.PKG_INVALID,
    ConfigurationError: ErrorCode.SYS_CONFIGURATION_ERROR,
}


class ErrorResponse:
    """Standardized error response structure."""

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict] = None,
        field: Optional[str] = None,
    ):
        self.code = code
        self.message = message or ErrorMessages.get(code)
        self.details = details or {}
        self.field = field

    def to_dict(self) -> Dict:
        """Convert to dictionary for API response."""
        response = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }

        if self.field:
            response["error"]["field"] = self.field

        if self.details:
            response["error"]["details"] = self.details

        return response

    @classmethod
    def from_exception(cls, exc: ProDeckException) -> "ErrorResponse":
        """Build a response for one of the application exceptions."""
        code = ErrorCode.SYS_INTERNAL_ERROR
        for exc_type in type(exc).__mro__:
            if exc_type in _EXCEPTION_CODES:
                code = _EXCEPTION_CODES[exc_type]
                break

        details = dict(exc.details)
        field = details.pop("field", None)
        return cls(code=code, message=exc.message, details=details, field=field)

    @classmethod
    def validation_error(
        cls,
        field: str,
        message: str,
        code: ErrorCode = ErrorCode.VAL_INVALID_INPUT
    ) -> "ErrorResponse":
        """Create validation error response."""
        return cls(
            code=code,
            message=message,
            field=field,
        )
