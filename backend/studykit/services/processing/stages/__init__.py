"""
Processing Stages

Each stage is a standalone module that performs a specific transformation:

- blocks: Block extraction and normalization into ContentBlock records
- units: Unit generation and synthesis of one LearningUnit per block

Both stages call the model once, recover JSON from the raw response, and
raise ExtractionFailure when nothing is recoverable. A failed vision call
falls back to a text-only call.

Stages can be run independently or orchestrated by the ingestion pipeline.
"""

from studykit.services.processing.stages.blocks import (
    attach_visual_context,
    ensure_unique_block_ids,
    extract_content_blocks,
    normalize_block,
    normalize_block_category,
)
from studykit.services.processing.stages.units import (
    correlate_intents,
    generate_learning_units,
    resolve_exercise_kind,
    synthesize_units,
)

__all__ = [
    "attach_visual_context",
    "correlate_intents",
    "ensure_unique_block_ids",
    "extract_content_blocks",
    "generate_learning_units",
    "normalize_block",
    "normalize_block_category",
    "resolve_exercise_kind",
    "synthesize_units",
]
