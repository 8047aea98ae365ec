"""
Learning System Enums

Defines enums for learning units, exercise kinds and the exercise session
state machine.
"""

from enum import Enum


class UnitStatus(str, Enum):
    """
    Learning unit status.

    "done" records that the unit was played to the end, not that it was
    answered correctly.
    """

    TODO = "todo"
    DONE = "done"


class UnitKind(str, Enum):
    """
    Pedagogical goal of a learning unit.

    - MEMORY: characters and words, exact recall
    - DISCRIMINATION: polyphonic characters, easily confused words
    - SEMANTIC: synonyms and antonyms
    - COLLOCATION: word pairings, language sense
    - EXPRESSION: sentence imitation, transfer of expression
    - COMPREHENSION: structured understanding of a text
    - QUIZ: mixed test
    - REVIEW: review task
    """

    MEMORY = "memory"
    DISCRIMINATION = "discrimination"
    SEMANTIC = "semantic"
    COLLOCATION = "collocation"
    EXPRESSION = "expression"
    COMPREHENSION = "comprehension"
    QUIZ = "quiz"
    REVIEW = "review"


class ExerciseKind(str, Enum):
    """
    Exercise formats the session engine knows how to grade.

    Auto-graded:
    - CHOICE: single-answer multiple choice, submitted on first selection
    - SPELLING: type the missing character(s) of a word
    - FILL_BLANK: type the word that fills the blank in a sentence
    - MATCHING: pair every left item with a right item, graded per pair

    Reference-only (submission reveals the reference answer):
    - QA: open question with a reference answer
    - IMITATION: write a sentence following a model sentence's structure

    Units without a recognized exercise kind are played as informational
    generic items.
    """

    CHOICE = "choice"
    SPELLING = "spelling"
    FILL_BLANK = "fill_blank"
    MATCHING = "matching"
    QA = "qa"
    IMITATION = "imitation"


class SessionPhase(str, Enum):
    """
    Exercise session states.

    State transitions:
    - IDLE → ACTIVE (start)
    - ACTIVE → ACTIVE (submit, advance within the unit, retreat)
    - ACTIVE → COMPLETED (advance past the last item)
    - ACTIVE/COMPLETED → IDLE (close)
    """

    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"


class TransitionSignal(str, Enum):
    """
    Reasons a session action was rejected.

    Session actions never raise; a rejected action leaves the state untouched
    and reports one of these signals instead.
    """

    NOT_ACTIVE = "not_active"  # No unit is being played
    SUBMISSION_REJECTED = "submission_rejected"  # Advance before a required submit
    AT_FIRST_ITEM = "at_first_item"  # Retreat from index 0
    ALREADY_SUBMITTED = "already_submitted"  # Answer change after submit
    NOT_SUBMITTED = "not_submitted"  # Retry before any submission
    EMPTY_ANSWER = "empty_answer"  # Blank text for a text-answer item
    INCOMPLETE_MATCHING = "incomplete_matching"  # Some left item unassigned
    INVALID_ANSWER = "invalid_answer"  # Option index or pair outside the item
    RIGHT_VALUE_TAKEN = "right_value_taken"  # Right value held by another left item
    WRONG_ITEM_KIND = "wrong_item_kind"  # Action does not apply to this item
