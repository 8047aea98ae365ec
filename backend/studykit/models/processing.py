"""
Ingestion Data Models (Pydantic)

Pydantic models for the ingestion pipeline: the structured result of JSON
recovery, the request and result of batch ingestion, and per-page failures.

Models:
- DiscardedCandidate: Brace-scan candidate that failed to parse
- RecoveryResult: Values recovered from one model response
- IngestionRequest: One material to ingest, with its rendered pages
- PageFailure: A page whose model calls produced nothing usable
- IngestionResult: Resource, blocks and units accumulated over a batch

Usage:
    from studykit.models.processing import IngestionRequest, PageImage

    request = IngestionRequest(
        file_name="三年级语文真题.pdf",
        pages=[PageImage(page_number=1, url="https://.../p1.png")],
    )
"""

from typing import Any, Optional

from pydantic import Field

from studykit.enums.content import MaterialCategory
from studykit.enums.pipeline import RecoveryStrategy
from studykit.models.base import FrozenModel, StrictModel
from studykit.models.content import ContentBlock, PageImage, Resource
from studykit.models.learning import LearningUnit


class DiscardedCandidate(FrozenModel):
    """
    Brace-balanced substring that did not parse as JSON.

    Attributes:
        start: Offset of the opening brace in the response text
        end: Offset one past the closing brace
        preview: First characters of the candidate
        error: Parser error message
    """

    start: int
    end: int
    preview: str
    error: str


class RecoveryResult(FrozenModel):
    """
    Values recovered from one model response.

    A DIRECT result holds the single parsed value in `values[0]`. A
    BRACE_SCAN result holds one value per recovered top-level object, in
    text order, and lists the candidates that had to be dropped.
    """

    strategy: RecoveryStrategy
    values: list[Any] = Field(default_factory=list)
    discarded: list[DiscardedCandidate] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        """True when some candidate objects were dropped."""
        return bool(self.discarded)

    @property
    def value(self) -> Any:
        """Recovered value: the parsed value, or the list of recovered objects."""
        if self.strategy == RecoveryStrategy.DIRECT:
            return self.values[0]
        return list(self.values)


class IngestionRequest(StrictModel):
    """
    One material to ingest.

    Attributes:
        file_name: Original file name (drives category inference)
        notes: Free-form notes from the uploader
        material_category: Overrides the category inferred from the name
        pages: Rendered pages; empty means a single text-only model call
        storage_url: Already-resolved locator of the uploaded file
    """

    file_name: str = Field(..., min_length=1)
    notes: Optional[str] = None
    material_category: Optional[MaterialCategory] = None
    pages: list[PageImage] = Field(default_factory=list)
    storage_url: Optional[str] = None


class PageFailure(FrozenModel):
    """A page skipped by batch ingestion."""

    page_number: int
    error_code: str
    message: str


class IngestionResult(FrozenModel):
    """
    Everything a batch produced.

    Attributes:
        resource: The ingested resource
        blocks: Normalized blocks from every successful page, in page order
        units: Units synthesized for those blocks, tagged with their page
        failures: Pages that were skipped
        quality_issues: Structural issues found by output validation
    """

    resource: Resource
    blocks: list[ContentBlock] = Field(default_factory=list)
    units: list[LearningUnit] = Field(default_factory=list)
    failures: list[PageFailure] = Field(default_factory=list)
    quality_issues: list[str] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)
