"""
Learning services: exercise item derivation, grading and the exercise
session state machine.
"""

from studykit.services.learning.grading import (
    GRADERS,
    grade,
    requires_submission,
    validate_submission,
)
from studykit.services.learning.items import derive_items, payload_entries
from studykit.services.learning.session_service import ExerciseSession

__all__ = [
    "ExerciseSession",
    "GRADERS",
    "derive_items",
    "grade",
    "payload_entries",
    "requires_submission",
    "validate_submission",
]
