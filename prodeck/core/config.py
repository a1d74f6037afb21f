"""
Application configuration management using Pydantic Settings.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "ProDeck"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")

    # API
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "ProDeck API"
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"]
    )

    # AI Services
    GOOGLE_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    PLANNER_MODEL: str = "gemini-3-pro-preview"
    GEMINI_IMAGE_MODEL: str = "gemini-3-pro-image-preview"
    OPENAI_IMAGE_MODEL: str = "gpt-image-1.5"
    OPENAI_IMAGE_SIZE: str = "1536x1024"  # Landscape, closest to 16:9
    OPENAI_IMAGE_QUALITY: str = "high"
    DEFAULT_IMAGE_MODEL: str = Field(default="gemini", pattern="^(gemini|openai)$")
    PLANNER_TIMEOUT_SECONDS: float = 120.0
    IMAGE_TIMEOUT_SECONDS: float = 45.0
    REMOTE_IMAGE_TIMEOUT_SECONDS: float = 30.0

    # Deck limits
    MIN_SLIDE_COUNT: int = 3
    MAX_SLIDE_COUNT: int = 20
    DEFAULT_SLIDE_COUNT: int = 6

    # File Upload
    MAX_UPLOAD_SIZE_MB: int = 50

    # Export
    EXPORT_FILENAME_PREFIX: str = "ProDeck"
    EXPORT_SLIDE_WIDTH_INCHES: float = 13.333
    EXPORT_SLIDE_HEIGHT_INCHES: float = 7.5

    # Sentry
    SENTRY_DSN: Optional[str] = None
    SENTRY_ENVIRONMENT: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    @model_validator(mode="after")
    def check_slide_bounds(self) -> "Settings":
        if not 1 <= self.MIN_SLIDE_COUNT <= self.MAX_SLIDE_COUNT:
            raise ValueError("MIN_SLIDE_COUNT must be between 1 and MAX_SLIDE_COUNT")
        if not self.MIN_SLIDE_COUNT <= self.DEFAULT_SLIDE_COUNT <= self.MAX_SLIDE_COUNT:
            raise ValueError("DEFAULT_SLIDE_COUNT must lie within the slide count bounds")
        return self

    @property
    def max_upload_size_bytes(self) -> int:
        """Calculate max upload size in bytes."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    def get_ai_config(self) -> Dict[str, Any]:
        """Get AI service configuration."""
        return {
            "planner_model": self.PLANNER_MODEL,
            "gemini_image_model": self.GEMINI_IMAGE_MODEL,
            "openai_image_model": self.OPENAI_IMAGE_MODEL,
            "default_image_model": self.DEFAULT_IMAGE_MODEL,
            "image_timeout": self.IMAGE_TIMEOUT_SECONDS,
            "has_google": bool(self.GOOGLE_API_KEY),
            "has_openai": bool(self.OPENAI_API_KEY),
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()


# Create a settings instance for easy import
settings = get_settings()
