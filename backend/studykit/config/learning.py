"""
Exercise Session Configuration

Settings for playing learning units. Override via environment variables
with LEARNING_ prefix.

Usage:
    from studykit.config.learning import learning_settings

    seed = learning_settings.MATCHING_SHUFFLE_SEED
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class LearningSettings(BaseSettings):
    """Exercise session configuration."""

    # Seed for the matching-board right-hand shuffle. None draws a fresh
    # order on every unit-open.
    MATCHING_SHUFFLE_SEED: Optional[int] = None

    # Labels shown for boolean reference answers on generic items
    TRUE_LABEL: str = "正确"
    FALSE_LABEL: str = "错误"

    # Placeholder shown when a generic item carries no answer at all
    NO_ANSWER_LABEL: str = "无标准答案"

    class Config:
        env_prefix = "LEARNING_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_learning_settings() -> LearningSettings:
    """Get cached learning settings instance."""
    return LearningSettings()


learning_settings = get_learning_settings()
