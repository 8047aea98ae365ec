"""Configuration package."""

from studykit.config.learning import (
    LearningSettings,
    get_learning_settings,
    learning_settings,
)
from studykit.config.processing import (
    ProcessingSettings,
    get_processing_settings,
    processing_settings,
)
from studykit.config.settings import Settings, get_settings, settings

__all__ = [
    # Application settings
    "Settings",
    "get_settings",
    "settings",
    # Processing settings
    "ProcessingSettings",
    "get_processing_settings",
    "processing_settings",
    # Learning settings
    "LearningSettings",
    "get_learning_settings",
    "learning_settings",
]
