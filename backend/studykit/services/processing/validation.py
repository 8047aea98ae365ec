"""
Ingestion Output Validation

Validates ingestion results for structural quality issues. The checks are
structural only: they never judge whether the model's content is right,
just whether it will play well.

Usage:
    from studykit.services.processing.validation import validate_ingestion_result

    issues = validate_ingestion_result(result)
    if issues:
        print(f"Quality issues: {issues}")
"""

import logging
from typing import Sequence

from studykit.config.processing import processing_settings
from studykit.enums.learning import ExerciseKind
from studykit.models.content import ContentBlock
from studykit.models.learning import BLANK_PATTERN, GenericItem, LearningUnit
from studykit.models.processing import IngestionResult, PageFailure
from studykit.services.learning.items import derive_items, payload_entries

logger = logging.getLogger(__name__)


def validate_ingestion_result(result: IngestionResult) -> list[str]:
    """
    Validate ingestion outputs for quality issues.

    Checks:
    - Block count and default titles
    - Unit/block correspondence
    - Units that will play as generic content
    - Fill-in sentences without a blank
    - Skipped pages

    Args:
        result: IngestionResult to validate

    Returns:
        List of issue descriptions (empty if all valid)
    """
    issues = []

    issues.extend(_validate_blocks(result.blocks))
    issues.extend(_validate_units(result.units, result.blocks))
    issues.extend(_validate_failures(result.failures))

    if issues:
        logger.info(f"Ingestion of {result.resource.title}: {len(issues)} quality issues")
    return issues


def _validate_blocks(blocks: Sequence[ContentBlock]) -> list[str]:
    """Validate extracted blocks."""
    issues = []

    if not blocks:
        issues.append("No content blocks extracted")
        return issues

    if len(blocks) < processing_settings.MIN_BLOCKS:
        issues.append(
            f"Only {len(blocks)} blocks extracted "
            f"(min: {processing_settings.MIN_BLOCKS})"
        )

    prefix = processing_settings.DEFAULT_BLOCK_TITLE.split("{")[0]
    untitled = [b for b in blocks if prefix and b.title.startswith(prefix)]
    if untitled:
        issues.append(f"{len(untitled)} blocks have no title from the model")

    return issues


def _validate_units(
    units: Sequence[LearningUnit], blocks: Sequence[ContentBlock]
) -> list[str]:
    """Validate synthesized units against their blocks."""
    issues = []

    if len(units) != len(blocks):
        issues.append(f"{len(units)} units for {len(blocks)} blocks")

    block_titles = {block.id: block.title for block in blocks}
    for unit in units:
        for block_id in unit.source_block_ids:
            if block_id in block_titles and block_titles[block_id] != unit.title:
                issues.append(f"Unit '{unit.title}' does not carry its block title")

        if unit.payload is None:
            issues.append(f"Unit '{unit.title}' has no exercise payload")
            continue
        if unit.exercise_kind is None:
            issues.append(f"Unit '{unit.title}' has no recognized exercise format")
            continue

        items = derive_items(unit)
        ambiguous = [i for i in items if isinstance(i, GenericItem) and i.ambiguous]
        if ambiguous:
            issues.append(
                f"Unit '{unit.title}' has {len(ambiguous)} malformed "
                f"{unit.exercise_kind.value} items"
            )

        if unit.exercise_kind == ExerciseKind.FILL_BLANK:
            for entry in payload_entries(unit.payload):
                sentence = entry.get("sentence") if isinstance(entry, dict) else None
                if isinstance(sentence, str) and not BLANK_PATTERN.search(sentence):
                    issues.append(f"Unit '{unit.title}' has a sentence without a blank")
                    break

    return issues


def _validate_failures(failures: Sequence[PageFailure]) -> list[str]:
    """Report skipped pages."""
    if not failures:
        return []
    pages = ", ".join(str(f.page_number) for f in failures)
    return [f"{len(failures)} pages skipped: {pages}"]
