"""
Application Configuration

This module provides type-safe configuration loading using Pydantic settings.
Environment variables are loaded from .env file and validated.

Usage:
    from studykit.config import settings

    # Access settings
    model = settings.TEXT_MODEL
    vision_model = settings.VISION_MODEL
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "StudyKit"
    DEBUG: bool = False

    # Provider keys (LiteLLM reads these from the environment as well)
    OPENAI_API_KEY: str = ""
    GEMINI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""

    # Model identifiers use LiteLLM format: provider/model-name
    # Text model for block extraction and unit generation without page images
    TEXT_MODEL: str = "openai/gpt-5-mini"

    # Vision model used when page screenshots are attached to a request
    VISION_MODEL: str = "gemini/gemini-2.5-flash"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
