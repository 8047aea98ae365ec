"""Pydantic models for the application."""

from studykit.models.content import ContentBlock, PageImage, Resource
from studykit.models.learning import (
    ExerciseItem,
    ItemResult,
    LearningUnit,
    SessionState,
    SessionView,
    TransitionOutcome,
    UnitStatusChanged,
)
from studykit.models.processing import (
    IngestionRequest,
    IngestionResult,
    PageFailure,
    RecoveryResult,
)

__all__ = [
    "Resource",
    "ContentBlock",
    "PageImage",
    "LearningUnit",
    "ExerciseItem",
    "ItemResult",
    "SessionState",
    "SessionView",
    "TransitionOutcome",
    "UnitStatusChanged",
    "RecoveryResult",
    "IngestionRequest",
    "IngestionResult",
    "PageFailure",
]
