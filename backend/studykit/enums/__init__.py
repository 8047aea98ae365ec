"""
Centralized enum definitions for the application.

All enums are organized by domain:
- pipeline.py: LLM operations, JSON recovery strategies
- content.py: Material categories, resource sources, block categories
- learning.py: Unit status and kinds, exercise kinds, session state machine

Usage:
    from studykit.enums import BlockCategory, ExerciseKind, UnitStatus

    # Or import from specific module
    from studykit.enums.learning import SessionPhase
"""

from studykit.enums.content import BlockCategory, MaterialCategory, ResourceSource
from studykit.enums.learning import (
    ExerciseKind,
    SessionPhase,
    TransitionSignal,
    UnitKind,
    UnitStatus,
)
from studykit.enums.pipeline import PipelineOperation, RecoveryStrategy

__all__ = [
    # Pipeline enums
    "PipelineOperation",
    "RecoveryStrategy",
    # Content enums
    "MaterialCategory",
    "ResourceSource",
    "BlockCategory",
    # Learning enums
    "UnitStatus",
    "UnitKind",
    "ExerciseKind",
    "SessionPhase",
    "TransitionSignal",
]
