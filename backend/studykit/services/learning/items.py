"""
Exercise Item Derivation

Turns a learning unit's stored payload into the list of typed exercise
items a session plays. Derivation is deterministic and read-only: the same
payload always yields the same items and the payload is never modified.

Item list, in order of preference:
1. The payload itself when it is a list
2. The first non-empty list under questions / cards / items / list / units
3. The payload as a single item when it carries a question-like field
4. The payload (or an empty object) as a single default item

Each entry is then built as the unit's exercise kind. Entries that do not
fit that kind degrade to a GenericItem flagged `ambiguous`; units without an
exercise kind play every entry as a plain GenericItem. Matching units play
all their pairs as one MatchingBoard.

Usage:
    from studykit.services.learning.items import derive_items

    items = derive_items(unit)
    for item in items:
        print(item.item_type)
"""

import logging
from typing import Any, Callable, Optional

from studykit.config.learning import LearningSettings, learning_settings
from studykit.enums.learning import ExerciseKind
from studykit.models.learning import (
    ChoiceItem,
    ExerciseItem,
    FillBlankItem,
    GenericItem,
    ImitationItem,
    LearningUnit,
    MatchingBoard,
    MatchingPair,
    QAItem,
    SpellingItem,
)
from studykit.pipelines.utils.text_utils import coerce_number, coerce_text

logger = logging.getLogger(__name__)

ITEM_ARRAY_FIELDS = ("questions", "cards", "items", "list", "units")

DEFAULT_CHOICE_QUESTION = "请选择正确答案"


def _first_text(raw: dict, *keys: str) -> Optional[str]:
    """First non-empty text value among keys."""
    for key in keys:
        text = coerce_text(raw.get(key))
        if text:
            return text
    return None


def payload_entries(payload: Any) -> list[Any]:
    """
    Locate the raw entries of a payload.

    Args:
        payload: Unit payload as stored

    Returns:
        Raw entries (a new list; the payload is not modified)
    """
    if isinstance(payload, list):
        return list(payload)
    if not isinstance(payload, dict):
        return [{}]

    for field in ITEM_ARRAY_FIELDS:
        value = payload.get(field)
        if isinstance(value, list) and value:
            return list(value)

    # Single-object payloads and the default both play the payload itself
    return [payload]


# =============================================================================
# Builders
# =============================================================================


def _build_choice(raw: dict) -> Optional[ChoiceItem]:
    options = raw.get("options")
    if not isinstance(options, list):
        options = raw.get("choices")
    if not isinstance(options, list) or not options:
        return None

    correct = coerce_number(raw.get("correct"))
    if correct is None:
        correct = coerce_number(raw.get("answer"))
    if correct is None:
        correct = 0
    if correct != int(correct) or not 0 <= correct < len(options):
        return None

    return ChoiceItem(
        question=_first_text(raw, "q", "question", "title") or DEFAULT_CHOICE_QUESTION,
        options=[coerce_text(option) or "" for option in options],
        correct_index=int(correct),
        explanation=_first_text(raw, "explanation", "analysis"),
    )


def _build_spelling(raw: dict) -> Optional[SpellingItem]:
    answer = _first_text(raw, "answer")
    word = _first_text(raw, "word")
    quiz = _first_text(raw, "quiz")
    if not answer or not (word or quiz):
        return None
    return SpellingItem(
        word=word or quiz,
        quiz=quiz or word,
        answer=answer,
        pinyin=_first_text(raw, "pinyin"),
        meaning=_first_text(raw, "meaning"),
    )


def _build_fill_blank(raw: dict) -> Optional[FillBlankItem]:
    sentence = _first_text(raw, "sentence")
    answer = _first_text(raw, "answer")
    if not sentence or not answer:
        return None
    return FillBlankItem(
        sentence=sentence,
        answer=answer,
        explanation=_first_text(raw, "explanation", "analysis"),
    )


def _build_qa(raw: dict) -> Optional[QAItem]:
    question = _first_text(raw, "question", "q", "front", "title")
    if not question:
        return None
    return QAItem(
        question=question,
        answer=_first_text(raw, "answer", "back", "explanation", "result"),
    )


def _build_imitation(raw: dict) -> Optional[ImitationItem]:
    original = _first_text(raw, "original")
    if not original:
        return None
    return ImitationItem(
        original=original,
        skeleton=_first_text(raw, "skeleton"),
        tip=_first_text(raw, "tip"),
    )


ItemBuilder = Callable[[dict], Optional[ExerciseItem]]

ITEM_BUILDERS: dict[ExerciseKind, ItemBuilder] = {
    ExerciseKind.CHOICE: _build_choice,
    ExerciseKind.SPELLING: _build_spelling,
    ExerciseKind.FILL_BLANK: _build_fill_blank,
    ExerciseKind.QA: _build_qa,
    ExerciseKind.IMITATION: _build_imitation,
}


def build_generic_item(
    raw: Any,
    fallback_title: str,
    ambiguous: bool = False,
    settings: Optional[LearningSettings] = None,
) -> GenericItem:
    """
    Build the informational fallback item.

    Boolean answers render as the configured true/false labels.

    Args:
        raw: Raw entry (non-dicts are shown as the title)
        fallback_title: Title used when the entry has none (the unit title)
        ambiguous: Entry belonged to a recognized kind but did not fit it
        settings: Learning settings (labels)

    Returns:
        GenericItem
    """
    settings = settings or learning_settings
    if not isinstance(raw, dict):
        raw = {"title": raw}

    answer_value = raw.get("answer")
    if answer_value is True:
        answer = settings.TRUE_LABEL
    elif answer_value is False:
        answer = settings.FALSE_LABEL
    else:
        answer = (
            _first_text(raw, "answer", "back", "skeleton", "result")
            or settings.NO_ANSWER_LABEL
        )

    return GenericItem(
        title=_first_text(raw, "sentence", "original", "question", "front", "title")
        or fallback_title,
        answer=answer,
        tip=_first_text(raw, "tip", "explanation"),
        ambiguous=ambiguous,
    )


def build_matching_board(
    entries: list[Any], fallback_title: str, settings: Optional[LearningSettings] = None
) -> ExerciseItem:
    """
    Collect every left/right entry into one board.

    Entries without both sides are skipped. A board with no pairs, or with a
    left or right value used twice, degrades to an ambiguous generic item.
    """
    pairs = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        left = _first_text(entry, "left")
        right = _first_text(entry, "right")
        if left and right:
            pairs.append(MatchingPair(left=left, right=right))
        else:
            logger.warning(f"Skipping matching entry without both sides: {entry}")

    lefts = [pair.left for pair in pairs]
    rights = [pair.right for pair in pairs]
    if not pairs or len(set(lefts)) != len(lefts) or len(set(rights)) != len(rights):
        logger.warning(f"Matching payload of '{fallback_title}' is not playable")
        return build_generic_item({}, fallback_title, ambiguous=True, settings=settings)
    return MatchingBoard(pairs=pairs)


def build_item(
    kind: Optional[ExerciseKind],
    raw: Any,
    fallback_title: str,
    settings: Optional[LearningSettings] = None,
) -> ExerciseItem:
    """
    Build one item of the given kind, degrading to a generic item.

    Args:
        kind: Unit exercise kind (None for generic units)
        raw: One raw entry
        fallback_title: Title for generic rendering
        settings: Learning settings

    Returns:
        Typed item, or GenericItem (ambiguous when kind was recognized)
    """
    builder = ITEM_BUILDERS.get(kind) if kind else None
    if builder is None:
        return build_generic_item(raw, fallback_title, settings=settings)

    item = builder(raw) if isinstance(raw, dict) else None
    if item is None:
        logger.warning(f"Entry does not fit {kind.value} in '{fallback_title}': {raw}")
        return build_generic_item(raw, fallback_title, ambiguous=True, settings=settings)
    return item


def derive_items(
    unit: LearningUnit, settings: Optional[LearningSettings] = None
) -> list[ExerciseItem]:
    """
    Derive the exercise items of a unit from its payload.

    Args:
        unit: Learning unit
        settings: Learning settings (labels for generic items)

    Returns:
        Items in play order (empty for an empty list payload)
    """
    entries = payload_entries(unit.payload)
    if unit.exercise_kind == ExerciseKind.MATCHING:
        if not entries:
            return []
        return [build_matching_board(entries, unit.title, settings=settings)]
    return [
        build_item(unit.exercise_kind, entry, unit.title, settings=settings)
        for entry in entries
    ]
