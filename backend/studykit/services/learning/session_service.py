"""
Exercise Session Service

Plays one learning unit as a sequence of exercise items and grades the
learner's answers.

Phases: idle → active → completed, and back to idle on close. Starting a
unit again re-opens it with fresh transient state. Every accepted action
replaces the immutable SessionState snapshot; rejected actions leave it
untouched and report a TransitionSignal. Nothing in this module raises for
a bad action.

Reaching the end of a unit marks it done and emits exactly one
UnitStatusChanged event to the registered listeners. Replaying a unit that
is already done emits nothing. Closing a session
before that has no effect on the unit.

Usage:
    from studykit.services.learning.session_service import ExerciseSession

    session = ExerciseSession()
    session.on_status_changed(lambda event: save(event.unit))

    session.start(unit)
    session.select_option(1)  # Choice items submit on selection
    session.advance()

    session.set_text("美")
    session.submit()
    outcome = session.advance()
    if not outcome.accepted:
        print(outcome.signal)
"""

import logging
import random
from typing import Any, Callable, Optional

from studykit.config.learning import LearningSettings, learning_settings
from studykit.enums.learning import SessionPhase, TransitionSignal, UnitStatus
from studykit.models.learning import (
    ChoiceItem,
    FillBlankItem,
    GenericItem,
    ImitationItem,
    ItemAnswerState,
    LearningUnit,
    MatchingBoard,
    QAItem,
    SessionState,
    SessionView,
    SpellingItem,
    TransitionOutcome,
    UnitStatusChanged,
)
from studykit.services.learning.grading import (
    grade,
    requires_submission,
    validate_submission,
)
from studykit.services.learning.items import derive_items

logger = logging.getLogger(__name__)

StatusListener = Callable[[UnitStatusChanged], Any]

_TEXT_ITEMS = (SpellingItem, FillBlankItem, QAItem, ImitationItem)

_ACCEPTED = TransitionOutcome(accepted=True)


def _rejected(signal: TransitionSignal) -> TransitionOutcome:
    return TransitionOutcome(accepted=False, signal=signal)


class ExerciseSession:
    """
    State machine for playing one learning unit.

    Args:
        rng: Random source for matching-board shuffles. Defaults to a
            Random seeded with LEARNING_MATCHING_SHUFFLE_SEED.
        settings: Learning settings (generic item labels, shuffle seed)
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        settings: Optional[LearningSettings] = None,
    ):
        self.settings = settings or learning_settings
        self.rng = rng or random.Random(self.settings.MATCHING_SHUFFLE_SEED)
        self._state = SessionState()
        self._listeners: list[StatusListener] = []

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def state(self) -> SessionState:
        """Current immutable snapshot."""
        return self._state

    @property
    def view(self) -> SessionView:
        """Read-only projection of the current snapshot."""
        state = self._state
        item = state.current_item if state.phase == SessionPhase.ACTIVE else None
        submitted = state.answer.submitted
        active = state.phase == SessionPhase.ACTIVE

        return SessionView(
            phase=state.phase,
            unit_id=state.unit.id if state.unit else None,
            unit_status=state.unit.status if state.unit else None,
            index=state.index,
            item_count=len(state.items),
            current_item=item,
            answer=state.answer,
            submitted=submitted,
            result=state.results.get(state.index) if submitted else None,
            matching_pool=list(state.matching_pools.get(state.index, [])),
            requires_submission=requires_submission(item),
            can_submit=(
                active
                and item is not None
                and not submitted
                and validate_submission(item, state.answer) is None
            ),
            is_last_item=active and state.index >= len(state.items) - 1,
        )

    def on_status_changed(self, listener: StatusListener) -> StatusListener:
        """
        Register a listener for UnitStatusChanged events.

        Returns the listener so the method can be used as a decorator.
        """
        self._listeners.append(listener)
        return listener

    # =========================================================================
    # Unit lifecycle
    # =========================================================================

    def start(self, unit: LearningUnit) -> TransitionOutcome:
        """
        Open a unit at its first item.

        Allowed from any phase; an open session is discarded. Items are
        derived from the payload and every matching board gets one shuffled
        right-hand pool that stays fixed until the unit is opened again.
        """
        items = derive_items(unit, settings=self.settings)
        pools = {}
        for index, item in enumerate(items):
            if isinstance(item, MatchingBoard):
                pool = item.rights
                self.rng.shuffle(pool)
                pools[index] = pool

        ambiguous = sum(
            1 for item in items if isinstance(item, GenericItem) and item.ambiguous
        )
        if ambiguous:
            logger.warning(
                f"Unit {unit.id} has {ambiguous} item(s) shown as generic content"
            )

        self._state = SessionState(
            phase=SessionPhase.ACTIVE,
            unit=unit,
            index=0,
            items=items,
            matching_pools=pools,
        )
        logger.debug(f"Started unit {unit.id} with {len(items)} items")
        return _ACCEPTED

    def close(self) -> TransitionOutcome:
        """Discard the session without touching the unit."""
        if self._state.phase == SessionPhase.ACTIVE and self._state.unit:
            logger.debug(f"Closed unit {self._state.unit.id} before completion")
        self._state = SessionState()
        return _ACCEPTED

    # =========================================================================
    # Answer building
    # =========================================================================

    def _editable(self, item_types: tuple) -> Optional[TransitionSignal]:
        """Signal that forbids editing the current answer, or None."""
        state = self._state
        if state.phase != SessionPhase.ACTIVE:
            return TransitionSignal.NOT_ACTIVE
        if not isinstance(state.current_item, item_types):
            return TransitionSignal.WRONG_ITEM_KIND
        if state.answer.submitted:
            return TransitionSignal.ALREADY_SUBMITTED
        return None

    def _set_answer(self, **update: Any) -> None:
        answer = self._state.answer.model_copy(update=update)
        self._state = self._state.model_copy(update={"answer": answer})

    def select_option(self, index: int) -> TransitionOutcome:
        """Select a choice option; this submits the item."""
        signal = self._editable((ChoiceItem,))
        if signal:
            return _rejected(signal)
        item: ChoiceItem = self._state.current_item
        if isinstance(index, bool) or not isinstance(index, int):
            return _rejected(TransitionSignal.INVALID_ANSWER)
        if not 0 <= index < len(item.options):
            return _rejected(TransitionSignal.INVALID_ANSWER)

        self._set_answer(selected_option=index)
        return self._submit_current()

    def set_text(self, text: str) -> TransitionOutcome:
        """Replace the typed answer of a text item."""
        signal = self._editable(_TEXT_ITEMS)
        if signal:
            return _rejected(signal)
        self._set_answer(text=text)
        return _ACCEPTED

    def assign(self, left: str, right: str) -> TransitionOutcome:
        """
        Pair a left value with a right value on a matching board.

        Reassigning a left value overwrites its previous pairing. A right
        value held by a different left value is rejected.
        """
        signal = self._editable((MatchingBoard,))
        if signal:
            return _rejected(signal)
        item: MatchingBoard = self._state.current_item
        if left not in item.lefts or right not in item.rights:
            return _rejected(TransitionSignal.INVALID_ANSWER)

        assignments = dict(self._state.answer.assignments)
        holder = next((k for k, v in assignments.items() if v == right), None)
        if holder is not None and holder != left:
            return _rejected(TransitionSignal.RIGHT_VALUE_TAKEN)

        assignments[left] = right
        self._set_answer(assignments=assignments)
        return _ACCEPTED

    def unassign(self, left: str) -> TransitionOutcome:
        """Remove the pairing of a left value."""
        signal = self._editable((MatchingBoard,))
        if signal:
            return _rejected(signal)
        if left not in self._state.answer.assignments:
            return _rejected(TransitionSignal.INVALID_ANSWER)

        assignments = dict(self._state.answer.assignments)
        del assignments[left]
        self._set_answer(assignments=assignments)
        return _ACCEPTED

    # =========================================================================
    # Submission
    # =========================================================================

    def _submit_current(self) -> TransitionOutcome:
        state = self._state
        item = state.current_item
        signal = validate_submission(item, state.answer)
        if signal:
            return _rejected(signal)

        result = grade(item, state.answer)
        results = dict(state.results)
        results[state.index] = result
        self._state = state.model_copy(
            update={
                "answer": state.answer.model_copy(update={"submitted": True}),
                "results": results,
            }
        )
        return _ACCEPTED

    def submit(self, answer: Any = None) -> TransitionOutcome:
        """
        Grade the current item.

        Args:
            answer: Optional answer to record first: an option index for
                choice items, text for text items, a left → right mapping
                for matching boards. None submits the answer built so far.

        Returns:
            Accepted outcome, or a rejection when the session is not active,
            the item was already submitted, or the answer is incomplete.
            Re-submitting never changes the recorded result.
        """
        state = self._state
        if state.phase != SessionPhase.ACTIVE:
            return _rejected(TransitionSignal.NOT_ACTIVE)
        if state.current_item is None:
            return _rejected(TransitionSignal.INVALID_ANSWER)
        if state.answer.submitted:
            return _rejected(TransitionSignal.ALREADY_SUBMITTED)

        item = state.current_item
        if answer is not None:
            if isinstance(item, ChoiceItem):
                return self.select_option(answer)
            if isinstance(item, _TEXT_ITEMS):
                self._set_answer(text=str(answer))
            elif isinstance(item, MatchingBoard):
                outcome = self._replace_assignments(answer)
                if not outcome.accepted:
                    return outcome

        outcome = self._submit_current()
        if not outcome.accepted:
            self._state = state
        return outcome

    def _replace_assignments(self, mapping: Any) -> TransitionOutcome:
        if not isinstance(mapping, dict):
            return _rejected(TransitionSignal.INVALID_ANSWER)
        item: MatchingBoard = self._state.current_item
        rights = list(mapping.values())
        if (
            any(left not in item.lefts for left in mapping)
            or any(right not in item.rights for right in rights)
        ):
            return _rejected(TransitionSignal.INVALID_ANSWER)
        if len(set(rights)) != len(rights):
            return _rejected(TransitionSignal.RIGHT_VALUE_TAKEN)
        self._set_answer(assignments=dict(mapping))
        return _ACCEPTED

    def retry(self) -> TransitionOutcome:
        """Clear the submission of the current item so it can be answered again."""
        state = self._state
        if state.phase != SessionPhase.ACTIVE:
            return _rejected(TransitionSignal.NOT_ACTIVE)
        if not state.answer.submitted:
            return _rejected(TransitionSignal.NOT_SUBMITTED)

        results = dict(state.results)
        results.pop(state.index, None)
        self._state = state.model_copy(
            update={"answer": ItemAnswerState(), "results": results}
        )
        return _ACCEPTED

    # =========================================================================
    # Navigation
    # =========================================================================

    def advance(self) -> TransitionOutcome:
        """
        Move to the next item, or complete the unit after the last one.

        Rejected with SUBMISSION_REJECTED while the current item still needs
        a submission. Completion marks the unit done and notifies listeners
        once; further advances are rejected with NOT_ACTIVE.
        """
        state = self._state
        if state.phase != SessionPhase.ACTIVE:
            return _rejected(TransitionSignal.NOT_ACTIVE)

        item = state.current_item
        if requires_submission(item) and not state.answer.submitted:
            return _rejected(TransitionSignal.SUBMISSION_REJECTED)

        if state.index + 1 < len(state.items):
            self._state = state.model_copy(
                update={"index": state.index + 1, "answer": ItemAnswerState()}
            )
            return _ACCEPTED

        self._complete()
        return _ACCEPTED

    def retreat(self) -> TransitionOutcome:
        """Go back one item with a fresh answer."""
        state = self._state
        if state.phase != SessionPhase.ACTIVE:
            return _rejected(TransitionSignal.NOT_ACTIVE)
        if state.index == 0:
            return _rejected(TransitionSignal.AT_FIRST_ITEM)

        self._state = state.model_copy(
            update={"index": state.index - 1, "answer": ItemAnswerState()}
        )
        return _ACCEPTED

    def _complete(self) -> None:
        was_done = self._state.unit.status == UnitStatus.DONE
        unit = self._state.unit.with_status(UnitStatus.DONE)
        self._state = self._state.model_copy(
            update={"phase": SessionPhase.COMPLETED, "unit": unit}
        )
        logger.info(f"Completed unit {unit.id}")
        if was_done:
            return

        event = UnitStatusChanged(unit_id=unit.id, status=unit.status, unit=unit)
        for listener in self._listeners:
            listener(event)
