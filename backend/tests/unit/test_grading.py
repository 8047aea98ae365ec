"""
Unit tests for exercise grading and submission validation.
"""

import pytest

from studykit.enums import ExerciseKind, TransitionSignal
from studykit.models.learning import (
    ChoiceItem,
    FillBlankItem,
    GenericItem,
    ImitationItem,
    ItemAnswerState,
    MatchingBoard,
    MatchingPair,
    QAItem,
    SpellingItem,
)
from studykit.services.learning.grading import (
    GRADERS,
    grade,
    requires_submission,
    validate_submission,
)


@pytest.fixture
def choice_item() -> ChoiceItem:
    return ChoiceItem(question="选一选", options=["A", "B", "C"], correct_index=1, explanation="B 对")


@pytest.fixture
def fill_blank_item() -> FillBlankItem:
    return FillBlankItem(sentence="这里的风景真( )啊！", answer="美")


@pytest.fixture
def board() -> MatchingBoard:
    return MatchingBoard(
        pairs=[
            MatchingPair(left="大", right="小"),
            MatchingPair(left="高", right="矮"),
            MatchingPair(left="长", right="短"),
        ]
    )


# =============================================================================
# Auto-graded Items
# =============================================================================


class TestAutoGrading:
    """Tests for choice, spelling, fill-in and matching grading."""

    @pytest.mark.parametrize("selected, correct", [(1, True), (0, False), (2, False)])
    def test_choice(self, choice_item, selected, correct):
        result = grade(choice_item, ItemAnswerState(selected_option=selected))

        assert result.correct is correct
        assert result.reference_answer == "B"
        assert result.explanation == "B 对"
        assert result.response == ["A", "B", "C"][selected]

    @pytest.mark.parametrize("text, correct", [("美", True), (" 美 ", True), ("丑", False)])
    def test_fill_blank_trimmed_equality(self, fill_blank_item, text, correct):
        result = grade(fill_blank_item, ItemAnswerState(text=text))

        assert result.correct is correct
        assert result.reference_answer == "美"

    def test_spelling_case_sensitive(self):
        item = SpellingItem(word="Apple", quiz="_pple", answer="A")

        assert grade(item, ItemAnswerState(text="A")).correct is True
        assert grade(item, ItemAnswerState(text="a")).correct is False

    def test_matching_per_pair(self, board):
        answer = ItemAnswerState(assignments={"大": "小", "高": "短", "长": "矮"})
        result = grade(board, answer)

        assert result.correct is False
        assert result.correct_count == 1
        assert result.total == 3
        assert result.pair_results == {"大": True, "高": False, "长": False}
        assert result.score == pytest.approx(1 / 3)

    def test_matching_order_independent(self, board):
        forward = {"大": "小", "高": "矮", "长": "短"}
        backward = dict(reversed(list(forward.items())))

        first = grade(board, ItemAnswerState(assignments=forward))
        second = grade(board, ItemAnswerState(assignments=backward))

        assert first == second
        assert first.correct is True
        assert first.score == 1.0


# =============================================================================
# Reference-only Items
# =============================================================================


class TestReferenceItems:
    """Items without a correctness check reveal their reference."""

    def test_qa(self):
        result = grade(QAItem(question="为什么？", answer="因为"), ItemAnswerState(text="不知道"))

        assert result.correct is None
        assert result.score is None
        assert result.reference_answer == "因为"
        assert result.response == "不知道"

    def test_imitation(self):
        item = ImitationItem(original="原句", skeleton="……像……", tip="找相似")
        result = grade(item, ItemAnswerState(text="云像棉花"))

        assert result.correct is None
        assert result.reference_answer == "……像……"
        assert result.explanation == "找相似"

    def test_generic(self):
        result = grade(GenericItem(title="t", answer="a", ambiguous=True), ItemAnswerState())

        assert result.correct is None
        assert result.reference_answer == "a"
        assert result.ambiguous


# =============================================================================
# Submission Rules
# =============================================================================


class TestSubmissionRules:
    """Tests for requires_submission and validate_submission."""

    def test_every_kind_has_a_grader(self):
        assert set(GRADERS) == set(ExerciseKind)

    def test_requires_submission(self, choice_item):
        assert requires_submission(choice_item)
        assert requires_submission(QAItem(question="q"))
        assert not requires_submission(GenericItem(title="t", answer="a"))
        assert not requires_submission(None)

    @pytest.mark.parametrize("selected", [None, 3, -1])
    def test_choice_needs_valid_selection(self, choice_item, selected):
        signal = validate_submission(choice_item, ItemAnswerState(selected_option=selected))
        assert signal == TransitionSignal.INVALID_ANSWER

    @pytest.mark.parametrize("text", ["", "   "])
    def test_text_items_need_text(self, fill_blank_item, text):
        signal = validate_submission(fill_blank_item, ItemAnswerState(text=text))
        assert signal == TransitionSignal.EMPTY_ANSWER

    def test_matching_needs_every_left(self, board):
        partial = ItemAnswerState(assignments={"大": "小", "高": "矮"})
        full = ItemAnswerState(assignments={"大": "小", "高": "矮", "长": "短"})

        assert validate_submission(board, partial) == TransitionSignal.INCOMPLETE_MATCHING
        assert validate_submission(board, full) is None

    def test_open_items_accept_empty_text(self):
        assert validate_submission(QAItem(question="q"), ItemAnswerState()) is None
        assert validate_submission(ImitationItem(original="o"), ItemAnswerState()) is None
