"""
Unit Generation Stage

Second ingestion stage: asks the model to turn knowledge blocks into
learning units and pairs each block with the unit intent the model wrote
for it.

The synthesizer produces exactly one unit per block. A unit always takes
its block's title, whatever the model wrote. Intents are matched to blocks
by exact title first and by position second; a block without an intent
still gets a unit, with no kind and no payload, which the session engine
plays as a generic item.

Usage:
    from studykit.services.processing.stages.units import (
        generate_learning_units,
        synthesize_units,
    )

    units = await generate_learning_units(resource, blocks, llm_client)
    units = synthesize_units(blocks, [{"title": "比喻", "payload": {...}}])
"""

import json
import logging
import uuid
from typing import Any, Optional, Sequence

from studykit.config.processing import processing_settings
from studykit.enums.learning import ExerciseKind, UnitKind, UnitStatus
from studykit.enums.pipeline import PipelineOperation
from studykit.models.content import ContentBlock, Resource
from studykit.models.learning import LearningUnit
from studykit.pipelines.utils.text_utils import (
    as_object_list,
    coerce_text,
    extract_json_from_response,
)
from studykit.services.llm.client import (
    LLMClient,
    build_messages,
    complete_with_fallback,
)
from studykit.services.processing.stages.blocks import dedupe_ids

logger = logging.getLogger(__name__)

_VALID_UNIT_KINDS = {e.value for e in UnitKind}
_VALID_EXERCISE_KINDS = {e.value for e in ExerciseKind}

# Exercise type names the model uses for formats we already play
_EXERCISE_KIND_ALIASES = {
    "reading_comprehension": ExerciseKind.QA,
}


UNIT_GENERATION_PROMPT = """你是特级教师。你的任务是将识别出的知识内容块（Blocks）加工为高效的学习单元。

请遵循以下步骤进行处理：

【步骤 1：单元划分】
1. 每个知识块（Block）必须对应生成一个学习单元（Unit）。
2. **重要**：生成的 Unit 的 "title" 必须与对应的 Block 的 "title" 完全一致。

【步骤 2：格式判断】
针对每个知识块，判断采用哪种练习格式最合适。禁止使用"闪卡"形式。
- 基础记忆类（如生字词）：拼写检测 (spelling)。
- 概念辨析类（如多音字、易混词）：选择题 (choice)。
- 语义关系类（如近反义词）：连线题 (matching)。
- 实际应用类（如词语搭配）：填空题 (fill_blank)。
- 表达提升类（如仿写）：仿写题 (imitation)。
- 深度理解类（如课文主题）：问答练习 (qa)。

【步骤 3：payload 结构】
- spelling: {{ "type": "spelling", "cards": [{{ "word": "完整词语", "quiz": "带下划线的题目，如：碧_", "answer": "缺失的字，如：绿", "pinyin": "pīn yīn", "meaning": "意思" }}] }}
- choice: {{ "type": "choice", "questions": [{{ "question": "...", "options": ["A", "B", "C", "D"], "correct": 0, "explanation": "..." }}] }}
- matching: {{ "type": "matching", "items": [{{ "left": "...", "right": "..." }}] }}
- fill_blank: {{ "type": "fill_blank", "questions": [{{ "sentence": "句子必须包含空括号且括号内不能出现答案，如：这里的风景真( )啊！", "answer": "正确答案", "explanation": "..." }}] }}
- imitation: {{ "type": "imitation", "questions": [{{ "original": "原句", "skeleton": "句式结构", "tip": "技巧" }}] }}
- qa: {{ "type": "qa", "questions": [{{ "question": "问题", "answer": "参考答案" }}] }}

Blocks 内容：{blocks_json}

输出 JSON 数组（不要输出其他文字）：
[
  {{
    "title": "必须与 Block 标题一致",
    "kind": "{kind_options}",
    "payload": {{ ... }}
  }}
]
"""


def _validate_unit_kind(value: Any) -> Optional[UnitKind]:
    """Return the UnitKind named by value, or None."""
    kind = (coerce_text(value) or "").lower()
    return UnitKind(kind) if kind in _VALID_UNIT_KINDS else None


def _validate_exercise_kind(value: Any) -> Optional[ExerciseKind]:
    """Return the ExerciseKind named by value (aliases included), or None."""
    kind = (coerce_text(value) or "").lower()
    if kind in _VALID_EXERCISE_KINDS:
        return ExerciseKind(kind)
    return _EXERCISE_KIND_ALIASES.get(kind)


def resolve_exercise_kind(intent: dict) -> Optional[ExerciseKind]:
    """
    Find the exercise format of a unit intent.

    The payload's "type" decides; the intent's own "kind"/"type" is used
    only when the payload does not name a format.
    """
    payload = intent.get("payload")
    if isinstance(payload, dict):
        kind = _validate_exercise_kind(payload.get("type"))
        if kind:
            return kind
    return _validate_exercise_kind(intent.get("kind")) or _validate_exercise_kind(
        intent.get("type")
    )


def correlate_intents(
    blocks: Sequence[ContentBlock], intents: Sequence[Any]
) -> list[Optional[int]]:
    """
    Pair every block with at most one intent.

    Pass 1 matches trimmed titles exactly, taking the earliest unused intent
    with that title. Pass 2 gives each still unmatched block the intent at
    the same index, if that intent is an object and unused.

    Args:
        blocks: Normalized blocks
        intents: Recovered unit intents (non-objects never match)

    Returns:
        For each block, the index of its intent or None
    """
    by_title: dict[str, list[int]] = {}
    for idx, intent in enumerate(intents):
        if not isinstance(intent, dict):
            continue
        title = coerce_text(intent.get("title"))
        if title:
            by_title.setdefault(title, []).append(idx)

    used: set[int] = set()
    matches: list[Optional[int]] = [None] * len(blocks)

    for i, block in enumerate(blocks):
        for idx in by_title.get(block.title.strip(), []):
            if idx not in used:
                matches[i] = idx
                used.add(idx)
                break

    for i in range(len(blocks)):
        if matches[i] is not None or i >= len(intents) or i in used:
            continue
        if isinstance(intents[i], dict):
            matches[i] = i
            used.add(i)

    return matches


def synthesize_units(
    blocks: Sequence[ContentBlock],
    intents: Sequence[Any],
    page_number: Optional[int] = None,
) -> list[LearningUnit]:
    """
    Build one LearningUnit per block.

    Args:
        blocks: Normalized blocks
        intents: Recovered unit intents from the model
        page_number: Page the blocks came from, stamped on every unit

    Returns:
        Units in block order; len(result) == len(blocks)
    """
    matches = correlate_intents(blocks, intents)
    units = []
    for block, match in zip(blocks, matches):
        intent: dict = intents[match] if match is not None else {}
        if match is None:
            logger.warning(f"No unit intent for block '{block.title}', using generic unit")

        payload = intent.get("payload")
        if not isinstance(payload, (dict, list)):
            payload = None

        units.append(
            LearningUnit(
                id=coerce_text(intent.get("id")) or f"u-{uuid.uuid4().hex[:8]}",
                title=block.title,
                status=UnitStatus.TODO,
                kind=_validate_unit_kind(intent.get("kind")),
                exercise_kind=resolve_exercise_kind(intent),
                payload=payload,
                source_block_ids=[block.id],
                page_number=page_number,
                summary=coerce_text(intent.get("summary")) or block.summary,
            )
        )
    return dedupe_ids(units)


async def generate_learning_units(
    resource: Resource,
    blocks: Sequence[ContentBlock],
    llm_client: LLMClient,
    image_urls: Optional[list[str]] = None,
    page_number: Optional[int] = None,
) -> list[LearningUnit]:
    """
    Ask the model for unit intents and synthesize units for the blocks.

    Args:
        resource: Resource being ingested
        blocks: Blocks extracted from the resource (or one page of it)
        llm_client: LLM client for completion
        image_urls: Resolved page images to send along
        page_number: Page the blocks came from

    Returns:
        One unit per block (empty without blocks; no model call is made)

    Raises:
        LLMError: If the text-only call fails
        ExtractionFailure: If the response holds no recoverable JSON
    """
    if not blocks:
        return []

    blocks_json = json.dumps(
        [{"title": block.title, "summary": block.summary} for block in blocks],
        ensure_ascii=False,
    )
    prompt = UNIT_GENERATION_PROMPT.format(
        blocks_json=blocks_json,
        kind_options="|".join(e.value for e in UnitKind),
    )

    content = await complete_with_fallback(
        llm_client,
        operation=PipelineOperation.UNIT_GENERATION,
        messages=build_messages(prompt),
        images=image_urls,
        temperature=processing_settings.UNIT_GENERATION_TEMPERATURE,
        max_tokens=processing_settings.UNIT_GENERATION_MAX_TOKENS,
    )

    intents = as_object_list(extract_json_from_response(content), ("units", "data"))
    units = synthesize_units(blocks, intents, page_number=page_number)
    logger.info(
        f"Synthesized {len(units)} units from {len(intents)} intents for {resource.title}"
    )
    return units
