"""
Content-related enums.

Defines enums for ingested resources and the knowledge blocks extracted
from them.
"""

from enum import Enum


class MaterialCategory(str, Enum):
    """
    Category of an ingested study material.

    Inferred from the file name when the caller does not provide one
    (see pipelines.material_ingestion.infer_material_category). The category
    also decides the fallback block category for unrecognized block types.
    """

    PDF = "pdf"
    EXERCISE = "exercise"  # Exam papers, drill sets, past papers
    VIDEO = "video"
    IMAGE = "image"


class ResourceSource(str, Enum):
    """Where a resource came from."""

    COMMUNITY = "community"
    UPLOAD = "upload"


class BlockCategory(str, Enum):
    """
    Closed set of knowledge block categories.

    Raw category strings from the model are mapped onto this enum by the
    content normalizer; anything unrecognized falls back to QUESTION for
    exercise materials and OTHER for everything else.
    """

    CONCEPT = "concept"
    DEFINITION = "definition"
    EXAMPLE = "example"
    EXERCISE = "exercise"
    QUESTION = "question"
    EXPLANATION = "explanation"
    EXPLANATION_CLIP = "explanation_clip"  # Video explanation segment
    VOCABULARY = "vocabulary"
    OTHER = "other"
