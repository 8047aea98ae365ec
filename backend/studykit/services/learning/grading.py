"""
Exercise Grading

Grades one exercise item against the answer built for it in a session.
Grading is dispatched through GRADERS, keyed by ExerciseKind, with a single
generic fallback for items without a recognized format.

| kind                  | requires submission        | rule                              |
|-----------------------|----------------------------|-----------------------------------|
| choice                | yes (implicit on select)   | selected == correct index         |
| spelling / fill_blank | yes, non-blank text        | trimmed, case-sensitive equality  |
| matching              | yes, every left assigned   | per-pair correctness              |
| qa / imitation        | yes                        | none; reveals the reference       |
| generic               | no                         | none; informational               |

Usage:
    from studykit.services.learning.grading import grade, validate_submission

    signal = validate_submission(item, answer)
    if signal is None:
        result = grade(item, answer)
"""

from typing import Callable, Optional

from studykit.enums.learning import ExerciseKind, TransitionSignal
from studykit.models.learning import (
    ChoiceItem,
    ExerciseItem,
    FillBlankItem,
    GenericItem,
    ImitationItem,
    ItemAnswerState,
    ItemResult,
    MatchingBoard,
    QAItem,
    SpellingItem,
)

Grader = Callable[[ExerciseItem, ItemAnswerState], ItemResult]


def _texts_match(response: str, expected: str) -> bool:
    return response.strip() == expected.strip()


def grade_choice(item: ChoiceItem, answer: ItemAnswerState) -> ItemResult:
    selected = answer.selected_option
    response = None
    if selected is not None and 0 <= selected < len(item.options):
        response = item.options[selected]
    return ItemResult(
        correct=selected == item.correct_index,
        reference_answer=item.options[item.correct_index],
        explanation=item.explanation,
        response=response,
    )


def grade_spelling(item: SpellingItem, answer: ItemAnswerState) -> ItemResult:
    return ItemResult(
        correct=_texts_match(answer.text, item.answer),
        reference_answer=item.answer,
        explanation=item.meaning,
        response=answer.text,
    )


def grade_fill_blank(item: FillBlankItem, answer: ItemAnswerState) -> ItemResult:
    return ItemResult(
        correct=_texts_match(answer.text, item.answer),
        reference_answer=item.answer,
        explanation=item.explanation,
        response=answer.text,
    )


def grade_matching(item: MatchingBoard, answer: ItemAnswerState) -> ItemResult:
    """Per-pair grading; the board is correct only when every pair is."""
    pair_results = {
        pair.left: answer.assignments.get(pair.left) == pair.right
        for pair in item.pairs
    }
    correct_count = sum(pair_results.values())
    return ItemResult(
        correct=correct_count == len(item.pairs),
        correct_count=correct_count,
        total=len(item.pairs),
        pair_results=pair_results,
    )


def grade_qa(item: QAItem, answer: ItemAnswerState) -> ItemResult:
    return ItemResult(reference_answer=item.answer, response=answer.text)


def grade_imitation(item: ImitationItem, answer: ItemAnswerState) -> ItemResult:
    return ItemResult(
        reference_answer=item.skeleton,
        explanation=item.tip,
        response=answer.text,
    )


def grade_generic(item: GenericItem, answer: ItemAnswerState) -> ItemResult:
    return ItemResult(
        reference_answer=item.answer,
        explanation=item.tip,
        ambiguous=item.ambiguous,
    )


GRADERS: dict[ExerciseKind, Grader] = {
    ExerciseKind.CHOICE: grade_choice,
    ExerciseKind.SPELLING: grade_spelling,
    ExerciseKind.FILL_BLANK: grade_fill_blank,
    ExerciseKind.MATCHING: grade_matching,
    ExerciseKind.QA: grade_qa,
    ExerciseKind.IMITATION: grade_imitation,
}


def item_kind(item: ExerciseItem) -> Optional[ExerciseKind]:
    """ExerciseKind of an item, None for generic items."""
    if isinstance(item, GenericItem):
        return None
    return ExerciseKind(item.item_type)


def requires_submission(item: Optional[ExerciseItem]) -> bool:
    """Whether the session must see a submission before moving past the item."""
    return item is not None and item_kind(item) is not None


def validate_submission(
    item: ExerciseItem, answer: ItemAnswerState
) -> Optional[TransitionSignal]:
    """
    Check that an answer is complete enough to be graded.

    Args:
        item: Current item
        answer: Answer built so far

    Returns:
        None when the answer can be submitted, else the rejection signal
    """
    if isinstance(item, ChoiceItem):
        selected = answer.selected_option
        if selected is None or not 0 <= selected < len(item.options):
            return TransitionSignal.INVALID_ANSWER
    elif isinstance(item, (SpellingItem, FillBlankItem)):
        if not answer.text.strip():
            return TransitionSignal.EMPTY_ANSWER
    elif isinstance(item, MatchingBoard):
        if any(left not in answer.assignments for left in item.lefts):
            return TransitionSignal.INCOMPLETE_MATCHING
    return None


def grade(item: ExerciseItem, answer: ItemAnswerState) -> ItemResult:
    """
    Grade an item through the dispatch table.

    Args:
        item: Item to grade
        answer: Submitted answer

    Returns:
        ItemResult
    """
    kind = item_kind(item)
    if kind is None:
        return grade_generic(item, answer)
    return GRADERS[kind](item, answer)
