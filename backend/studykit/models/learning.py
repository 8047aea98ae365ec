"""
Learning Data Models (Pydantic)

Pydantic models for learning units, the exercise items derived from their
payloads, and the exercise session state machine.

ARCHITECTURE NOTE:
    A LearningUnit stores its payload verbatim. Items are derived from the
    payload when a session opens (services/learning/items.py) and never
    written back. Session state is a frozen snapshot; every accepted action
    produces a new SessionState.

    Data flows: Unit payload → ExerciseItem union → SessionState → SessionView

Models:
- LearningUnit: Exercise package anchored to one content block
- ChoiceItem, SpellingItem, FillBlankItem, MatchingBoard, QAItem,
  ImitationItem, GenericItem: Exercise item union keyed by `item_type`
- ItemAnswerState: Transient answer being built for the current item
- ItemResult: Graded outcome of one item
- SessionState: Full snapshot of an exercise session
- SessionView: Read-only projection handed to presentation code
- TransitionOutcome: Accepted/rejected report of a session action
- UnitStatusChanged: Event emitted when a unit is played to the end

Usage:
    from studykit.models.learning import LearningUnit
    from studykit.services.learning import ExerciseSession

    session = ExerciseSession()
    session.start(unit)
    session.view.current_item
"""

import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field

from studykit.enums.learning import (
    ExerciseKind,
    SessionPhase,
    TransitionSignal,
    UnitKind,
    UnitStatus,
)
from studykit.models.base import FrozenModel

# Parenthesised blank in a fill-in sentence, ASCII or full-width
BLANK_PATTERN = re.compile(r"(\(|（)[^(（)]*?(\)|）)")
BLANK_PLACEHOLDER = "______"


# =============================================================================
# Learning Units
# =============================================================================


class LearningUnit(FrozenModel):
    """
    Exercise package anchored to one content block.

    Attributes:
        id: Unit identifier
        title: Always equal to the source block's title
        status: todo until the unit is played to the end
        kind: Pedagogical goal (memory, semantic, quiz, ...)
        exercise_kind: Exercise format; None plays as generic items
        payload: Exercise data exactly as the model produced it
        source_block_ids: Blocks the unit was synthesized from
        page_number: Page of the batch the unit came from
        summary: Short description of the unit
    """

    id: str = Field(..., description="Unit identifier")
    title: str = Field(..., description="Title of the source block")
    status: UnitStatus = Field(default=UnitStatus.TODO)
    kind: Optional[UnitKind] = Field(default=None)
    exercise_kind: Optional[ExerciseKind] = Field(default=None)
    payload: Any = Field(default=None, description="Stored verbatim, never mutated")
    source_block_ids: list[str] = Field(default_factory=list)
    page_number: Optional[int] = Field(default=None)
    summary: Optional[str] = Field(default=None)

    def with_status(self, status: UnitStatus) -> "LearningUnit":
        """Return a copy of this unit with a new status."""
        return self.model_copy(update={"status": status})


# =============================================================================
# Exercise Items
# =============================================================================


class ChoiceItem(FrozenModel):
    """Single-answer multiple choice question."""

    item_type: Literal["choice"] = "choice"
    question: str
    options: list[str]
    correct_index: int = Field(..., ge=0)
    explanation: Optional[str] = None


class SpellingItem(FrozenModel):
    """
    Recall the missing character(s) of a word.

    `quiz` is the word with the gap shown to the learner, `word` is the
    complete word revealed after submission.
    """

    item_type: Literal["spelling"] = "spelling"
    word: str
    quiz: str
    answer: str
    pinyin: Optional[str] = None
    meaning: Optional[str] = None


class FillBlankItem(FrozenModel):
    """Sentence with one parenthesised blank, e.g. "风景真( )啊"."""

    item_type: Literal["fill_blank"] = "fill_blank"
    sentence: str
    answer: str
    explanation: Optional[str] = None

    @property
    def display_sentence(self) -> str:
        """Sentence with every parenthesised span masked as a blank."""
        return BLANK_PATTERN.sub(BLANK_PLACEHOLDER, self.sentence)


class MatchingPair(FrozenModel):
    left: str
    right: str


class MatchingBoard(FrozenModel):
    """
    All pairs of a matching exercise, played as one item.

    Left and right values are unique within a board, so assignments can be
    keyed by left value and each right value belongs to exactly one pair.
    """

    item_type: Literal["matching"] = "matching"
    pairs: list[MatchingPair] = Field(..., min_length=1)

    @property
    def lefts(self) -> list[str]:
        return [pair.left for pair in self.pairs]

    @property
    def rights(self) -> list[str]:
        return [pair.right for pair in self.pairs]

    @property
    def answer_key(self) -> dict[str, str]:
        return {pair.left: pair.right for pair in self.pairs}


class QAItem(FrozenModel):
    """Open question; submission reveals the reference answer."""

    item_type: Literal["qa"] = "qa"
    question: str
    answer: Optional[str] = None


class ImitationItem(FrozenModel):
    """Write a sentence following the structure of a model sentence."""

    item_type: Literal["imitation"] = "imitation"
    original: str
    skeleton: Optional[str] = None
    tip: Optional[str] = None


class GenericItem(FrozenModel):
    """
    Informational item for payloads without a recognized exercise format.

    `ambiguous` is set when the unit named a recognized exercise kind but
    the item data did not fit it.
    """

    item_type: Literal["generic"] = "generic"
    title: str
    answer: str
    tip: Optional[str] = None
    ambiguous: bool = False


ExerciseItem = Annotated[
    Union[
        ChoiceItem,
        SpellingItem,
        FillBlankItem,
        MatchingBoard,
        QAItem,
        ImitationItem,
        GenericItem,
    ],
    Field(discriminator="item_type"),
]


# =============================================================================
# Session State
# =============================================================================


class ItemAnswerState(FrozenModel):
    """
    Answer being built for the current item.

    Reset whenever the session moves to another item.
    """

    selected_option: Optional[int] = None
    text: str = ""
    assignments: dict[str, str] = Field(
        default_factory=dict, description="Matching: left value → right value"
    )
    submitted: bool = False


class ItemResult(FrozenModel):
    """
    Graded outcome of one item.

    Attributes:
        correct: True/False for auto-graded items, None when there is no
            correctness check (qa, imitation, generic)
        correct_count / total: Per-pair tally for matching boards
        pair_results: Matching: left value → pair correct
        reference_answer: Answer to show after submission
        explanation: Explanation to show after submission
        response: What the learner submitted
        ambiguous: Item was degraded to generic rendering
    """

    correct: Optional[bool] = None
    correct_count: int = 0
    total: int = 0
    pair_results: dict[str, bool] = Field(default_factory=dict)
    reference_answer: Optional[str] = None
    explanation: Optional[str] = None
    response: Optional[str] = None
    ambiguous: bool = False

    @property
    def score(self) -> Optional[float]:
        """Fraction of credit earned, None for ungraded items."""
        if self.total:
            return self.correct_count / self.total
        if self.correct is None:
            return None
        return 1.0 if self.correct else 0.0


class SessionState(FrozenModel):
    """
    Snapshot of an exercise session.

    Attributes:
        phase: idle, active or completed
        unit: Unit being played (status updated on completion)
        index: Position of the current item
        items: Items derived from the unit payload when the session started
        answer: Transient answer state of the current item
        results: Recorded results by item index
        matching_pools: Shuffled right-hand values by item index, fixed for
            the lifetime of the session
    """

    phase: SessionPhase = SessionPhase.IDLE
    unit: Optional[LearningUnit] = None
    index: int = 0
    items: list[ExerciseItem] = Field(default_factory=list)
    answer: ItemAnswerState = Field(default_factory=ItemAnswerState)
    results: dict[int, ItemResult] = Field(default_factory=dict)
    matching_pools: dict[int, list[str]] = Field(default_factory=dict)

    @property
    def current_item(self) -> Optional[ExerciseItem]:
        if 0 <= self.index < len(self.items):
            return self.items[self.index]
        return None


class SessionView(FrozenModel):
    """Read-only projection of the session for presentation code."""

    phase: SessionPhase
    unit_id: Optional[str] = None
    unit_status: Optional[UnitStatus] = None
    index: int = 0
    item_count: int = 0
    current_item: Optional[ExerciseItem] = None
    answer: ItemAnswerState = Field(default_factory=ItemAnswerState)
    submitted: bool = False
    result: Optional[ItemResult] = None
    matching_pool: list[str] = Field(default_factory=list)
    requires_submission: bool = False
    can_submit: bool = False
    is_last_item: bool = False


class TransitionOutcome(FrozenModel):
    """
    Report of one session action.

    Rejected actions leave the session untouched and carry a signal.
    """

    accepted: bool
    signal: Optional[TransitionSignal] = None


class UnitStatusChanged(FrozenModel):
    """Emitted once when a session reaches the completed phase."""

    unit_id: str
    status: UnitStatus
    unit: LearningUnit
    occurred_at: datetime = Field(default_factory=datetime.now)
