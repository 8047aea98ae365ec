"""
Block Extraction Stage

First ingestion stage: asks the model to split a study material into
knowledge blocks and normalizes whatever it returns into canonical
ContentBlock records.

Normalization never fails. Unknown categories fall back to a default that
depends on the material category, numbers are accepted only when already
numeric, and every optional field is either a proper value or absent.

Usage:
    from studykit.services.processing.stages.blocks import (
        extract_content_blocks,
        normalize_block,
    )

    blocks = await extract_content_blocks(resource, llm_client, image_urls)
    block = normalize_block({"type": "Concept", "title": "比喻"}, "pdf", "r-1")
"""

import logging
import math
import uuid
from typing import Any, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel

from studykit.config.processing import processing_settings
from studykit.enums.content import BlockCategory, MaterialCategory
from studykit.enums.pipeline import PipelineOperation
from studykit.models.content import ContentBlock, Resource
from studykit.pipelines.utils.text_utils import (
    as_object_list,
    coerce_number,
    coerce_text,
    extract_json_from_response,
    first_present,
)
from studykit.services.llm.client import (
    LLMClient,
    build_messages,
    complete_with_fallback,
)

logger = logging.getLogger(__name__)

_VALID_CATEGORIES = {e.value for e in BlockCategory}

RecordT = TypeVar("RecordT", bound=BaseModel)


BLOCK_EXTRACTION_PROMPT = """你是特级教师。请识别资料中的核心知识点（生字词、多音字、近反义词、句式、课文理解要点等）。
资料名称：{title}
资料类型：{material_category}
{notes_section}
任务：
1. 直接提取原始信息，不要加工。
2. 数量：{min_blocks}-{max_blocks} 个核心知识块。
3. type 只能取以下值之一：{category_options}

输出格式（严格 JSON 数组，不要输出其他文字）：
[
  {{
    "id": "b-1",
    "type": "vocabulary",
    "title": "标题",
    "summary": "详细内容描述",
    "topic": "所属单元或主题",
    "difficulty": 1,
    "pageStart": 1,
    "pageEnd": 1,
    "tags": ["标签"]
  }}
]
"""


def normalize_block_category(
    raw_category: Any, material_category: Union[MaterialCategory, str]
) -> BlockCategory:
    """
    Map a raw category string onto the closed BlockCategory set.

    Matching is trimmed and case-insensitive. Unrecognized values become
    QUESTION for exercise materials and OTHER for everything else.

    Args:
        raw_category: Category value from the model (any type)
        material_category: Category of the material being ingested

    Returns:
        A BlockCategory
    """
    value = (coerce_text(raw_category) or "").lower()
    if value in _VALID_CATEGORIES:
        return BlockCategory(value)
    if material_category == MaterialCategory.EXERCISE:
        return BlockCategory.QUESTION
    return BlockCategory.OTHER


def _clamp_difficulty(value: Any) -> Optional[int]:
    number = coerce_number(value)
    if number is None:
        return None
    # Halves round up: 2.5 -> 3
    return math.floor(min(5, max(1, number)) + 0.5)


def _page(value: Any) -> Optional[int]:
    number = coerce_number(value)
    return int(number) if number is not None else None


def _seconds(value: Any) -> Optional[float]:
    number = coerce_number(value)
    return float(number) if number is not None else None


def _tags(value: Any) -> Optional[list[str]]:
    if not isinstance(value, list):
        return None
    tags = [tag for tag in (coerce_text(item) for item in value) if tag]
    return tags or None


def normalize_block(
    raw: Any,
    material_category: Union[MaterialCategory, str],
    resource_id: str,
    index: int = 0,
) -> ContentBlock:
    """
    Turn one raw object from the model into a ContentBlock.

    Total: any input (including non-dicts) produces a block. Locator keys
    are read in snake_case or camelCase.

    Args:
        raw: One recovered JSON value
        material_category: Category of the material (tie-break default)
        resource_id: Owning resource; always stamped from the caller
        index: Position of the object in the response (for the default title)

    Returns:
        Normalized ContentBlock
    """
    if not isinstance(raw, dict):
        logger.warning(f"Block {index + 1} is not an object, using defaults")
        raw = {}

    title = coerce_text(raw.get("title"))
    if not title:
        title = processing_settings.DEFAULT_BLOCK_TITLE.format(index=index + 1)

    return ContentBlock(
        id=coerce_text(raw.get("id")) or f"b-{uuid.uuid4().hex[:8]}",
        resource_id=resource_id,
        category=normalize_block_category(
            first_present(raw, "type", "category"), material_category
        ),
        title=title,
        summary=coerce_text(raw.get("summary")),
        topic=coerce_text(raw.get("topic")),
        difficulty=_clamp_difficulty(raw.get("difficulty")),
        page_start=_page(first_present(raw, "page_start", "pageStart")),
        page_end=_page(first_present(raw, "page_end", "pageEnd")),
        time_start_sec=_seconds(first_present(raw, "time_start_sec", "timeStartSec")),
        time_end_sec=_seconds(first_present(raw, "time_end_sec", "timeEndSec")),
        tags=_tags(raw.get("tags")),
    )


def dedupe_ids(
    records: Sequence[RecordT], taken: Optional[set[str]] = None
) -> list[RecordT]:
    """
    Re-stamp repeated ids with a numeric suffix.

    The first occurrence keeps its id; later ones become "<id>-2", "<id>-3"
    and so on. Passing the same `taken` set over several calls keeps ids
    unique across all of them.

    Args:
        records: Frozen records with an `id` field
        taken: Ids already in use; updated in place

    Returns:
        New list with unique ids, in the same order
    """
    taken = set() if taken is None else taken
    result = []
    for record in records:
        new_id = record.id
        suffix = 2
        while new_id in taken:
            new_id = f"{record.id}-{suffix}"
            suffix += 1
        taken.add(new_id)
        if new_id != record.id:
            record = record.model_copy(update={"id": new_id})
        result.append(record)
    return result


def ensure_unique_block_ids(
    blocks: Sequence[ContentBlock], taken: Optional[set[str]] = None
) -> list[ContentBlock]:
    """Make block ids unique within a resource (page batches restart at b-1)."""
    return dedupe_ids(blocks, taken)


def attach_visual_context(
    blocks: Sequence[ContentBlock], image_urls: Optional[Sequence[str]]
) -> list[ContentBlock]:
    """
    Record the page images a set of blocks was extracted from.

    Args:
        blocks: Blocks from one model call
        image_urls: Resolved locators sent with that call

    Returns:
        Blocks with `image_urls` set (unchanged when there are no images)
    """
    if not image_urls:
        return list(blocks)
    urls = list(image_urls)
    return [block.model_copy(update={"image_urls": urls}) for block in blocks]


async def extract_content_blocks(
    resource: Resource,
    llm_client: LLMClient,
    image_urls: Optional[list[str]] = None,
) -> list[ContentBlock]:
    """
    Ask the model for the knowledge blocks of a resource.

    With page images the vision model is used, and a failed vision call
    falls back to a text-only call with the same prompt.

    Args:
        resource: Resource being ingested
        llm_client: LLM client for completion
        image_urls: Resolved page images to send along

    Returns:
        Normalized blocks, in response order (may be empty)

    Raises:
        LLMError: If the text-only call fails
        ExtractionFailure: If the response holds no recoverable JSON
    """
    notes_section = f"备注：{resource.notes}\n" if resource.notes else ""
    prompt = BLOCK_EXTRACTION_PROMPT.format(
        title=resource.title,
        material_category=resource.material_category.value,
        notes_section=notes_section,
        min_blocks=processing_settings.MIN_BLOCKS,
        max_blocks=processing_settings.MAX_BLOCKS,
        category_options="|".join(e.value for e in BlockCategory),
    )

    content = await complete_with_fallback(
        llm_client,
        operation=PipelineOperation.BLOCK_EXTRACTION,
        messages=build_messages(prompt),
        images=image_urls,
        temperature=processing_settings.BLOCK_EXTRACTION_TEMPERATURE,
        max_tokens=processing_settings.BLOCK_EXTRACTION_MAX_TOKENS,
    )

    raw_blocks = as_object_list(
        extract_json_from_response(content), ("blocks", "items", "data")
    )
    blocks = ensure_unique_block_ids(
        [
            normalize_block(raw, resource.material_category, resource.id, index=i)
            for i, raw in enumerate(raw_blocks)
        ]
    )
    logger.info(f"Extracted {len(blocks)} blocks from {resource.title}")
    return attach_visual_context(blocks, image_urls)
