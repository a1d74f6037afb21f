"""
Tests for settings and the error catalog.
"""
import pytest
from pydantic import ValidationError as SettingsValidationError

from prodeck.core.config import Settings
from prodeck.core.errors import ErrorCode, ErrorMessages, ErrorResponse
from prodeck.core.exceptions import (
    DeckBusyError,
    InvalidSlideState,
    ProDeckException,
    ValidationError,
)


class TestSettings:
    """Test configuration parsing."""

    def test_defaults(self):
        config = Settings(_env_file=None)

        assert config.IMAGE_TIMEOUT_SECONDS == 45.0
        assert (config.MIN_SLIDE_COUNT, config.MAX_SLIDE_COUNT) == (3, 20)
        assert config.max_upload_size_bytes == config.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    def test_cors_origins_from_string(self):
        config = Settings(_env_file=None, BACKEND_CORS_ORIGINS="http://a.test, http://b.test")

        assert config.BACKEND_CORS_ORIGINS == ["http://a.test", "http://b.test"]

    def test_rejects_inverted_slide_bounds(self):
        with pytest.raises(SettingsValidationError):
            Settings(_env_file=None, MIN_SLIDE_COUNT=10, MAX_SLIDE_COUNT=5)

    def test_rejects_unknown_image_model(self):
        with pytest.raises(SettingsValidationError):
            Settings(_env_file=None, DEFAULT_IMAGE_MODEL="dalle")


class TestErrorResponse:
    """Test exception to response mapping."""

    def test_validation_error_field(self):
        response = ErrorResponse.from_exception(ValidationError("Bad brief", field="brief"))

        assert response.to_dict() == {
            "error": {"code": "VAL_001", "message": "Bad brief", "field": "brief"}
        }

    def test_details_are_kept(self):
        response = ErrorResponse.from_exception(InvalidSlideState(2, "pending", "edit"))

        body = response.to_dict()["error"]
        assert body["code"] == ErrorCode.DECK_INVALID_STATE_TRANSITION.value
        assert body["details"] == {"position": 2, "state": "pending", "action": "edit"}
        assert body["message"] == "Cannot edit slide 2 while it is pending"

    def test_unknown_exception_is_internal(self):
        response = ErrorResponse.from_exception(ProDeckException("odd"))

        assert response.code == ErrorCode.SYS_INTERNAL_ERROR

    def test_message_formatting(self):
        assert ErrorMessages.get(ErrorCode.VAL_FILE_TOO_LARGE, limit_mb=50).endswith("50 MB")

    def test_busy_deck_conflict(self):
        response = ErrorResponse.from_exception(DeckBusyError("deck-1", "generate"))

        assert response.code == ErrorCode.DECK_BUSY
        assert response.details == {"deck_id": "deck-1", "operation": "generate"}
