"""
Material Ingestion Pipeline

Turns one uploaded study material into a Resource, its ContentBlocks and
one LearningUnit per block, by calling the generative model and recovering
structure from whatever text comes back.

Features:
- Material category inferred from the file name when not given
- One block-extraction call and one unit-generation call per page
- Parallel page processing with a concurrency limit (sequential by default)
- Page failures recorded and skipped; only a batch with zero usable pages fails
- Vision calls fall back to text-only calls
- Block and unit ids kept unique across pages
- Structural quality issues attached to the result

Usage:
    from studykit.models.content import PageImage
    from studykit.models.processing import IngestionRequest
    from studykit.pipelines.material_ingestion import MaterialIngestionPipeline

    pipeline = MaterialIngestionPipeline()
    result = await pipeline.ingest(
        IngestionRequest(
            file_name="三年级语文真题.pdf",
            pages=[PageImage(page_number=1, url="https://.../p1.png")],
        )
    )
    print(len(result.blocks), len(result.units), result.failures)

    # For long materials, process pages in parallel:
    pipeline = MaterialIngestionPipeline(max_concurrency=4)
"""

import asyncio
import logging
import re
import uuid
from typing import Optional

from studykit.config.processing import processing_settings
from studykit.enums.content import MaterialCategory, ResourceSource
from studykit.errors import IngestionError
from studykit.models.content import ContentBlock, PageImage, Resource
from studykit.models.learning import LearningUnit
from studykit.models.processing import IngestionRequest, IngestionResult, PageFailure
from studykit.services.llm.client import LLMClient, get_llm_client
from studykit.services.processing.stages.blocks import (
    dedupe_ids,
    ensure_unique_block_ids,
    extract_content_blocks,
)
from studykit.services.processing.stages.units import generate_learning_units
from studykit.services.processing.validation import validate_ingestion_result

# =============================================================================
# Constants
# =============================================================================

VIDEO_SUFFIXES = (".mp4", ".mov")
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")
VIDEO_KEYWORDS = ("视频",)
EXERCISE_KEYWORDS = ("套卷", "试卷", "真题", "题集", "习题")

EXTENSION_PATTERN = re.compile(r"\.[^/.]+$")


def infer_material_category(file_name: str) -> MaterialCategory:
    """
    Infer the material category from a file name.

    Checked in order: video suffix or keyword, image suffix, exercise
    keyword (exam papers, drill sets), otherwise pdf.

    Args:
        file_name: Original file name

    Returns:
        MaterialCategory
    """
    lower = file_name.lower()
    if lower.endswith(VIDEO_SUFFIXES) or any(k in lower for k in VIDEO_KEYWORDS):
        return MaterialCategory.VIDEO
    if lower.endswith(IMAGE_SUFFIXES):
        return MaterialCategory.IMAGE
    if any(k in lower for k in EXERCISE_KEYWORDS):
        return MaterialCategory.EXERCISE
    return MaterialCategory.PDF


def create_resource(
    file_name: str,
    notes: Optional[str] = None,
    material_category: Optional[MaterialCategory] = None,
    storage_url: Optional[str] = None,
    source: ResourceSource = ResourceSource.UPLOAD,
) -> Resource:
    """
    Create the Resource record for an upload.

    The title is the file name without its extension.

    Args:
        file_name: Original file name
        notes: Uploader notes
        material_category: Explicit category (inferred when None)
        storage_url: Already-resolved storage locator
        source: Where the material came from

    Returns:
        New Resource
    """
    return Resource(
        id=f"r-{uuid.uuid4().hex[:12]}",
        title=EXTENSION_PATTERN.sub("", file_name) or file_name,
        source=source,
        file_name=file_name,
        material_category=material_category or infer_material_category(file_name),
        notes=notes or None,
        storage_url=storage_url,
    )


class MaterialIngestionPipeline:
    """
    Batch ingestion of one material.

    Args:
        llm_client: Client for model calls (shared client when None)
        max_concurrency: Pages processed at once
        validate_output: Attach structural quality issues to the result
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        max_concurrency: Optional[int] = None,
        validate_output: Optional[bool] = None,
    ):
        self.llm_client = llm_client
        self.max_concurrency = max(
            1, max_concurrency or processing_settings.MAX_PAGE_CONCURRENCY
        )
        self.validate_output = (
            processing_settings.VALIDATE_OUTPUT
            if validate_output is None
            else validate_output
        )
        self.logger = logging.getLogger(self.__class__.__name__)

    def _client(self) -> LLMClient:
        if self.llm_client is None:
            self.llm_client = get_llm_client()
        return self.llm_client

    async def ingest(self, request: IngestionRequest) -> IngestionResult:
        """
        Ingest one material.

        Without pages a single text-only pass runs over the resource
        metadata and its failures propagate. With pages every page is
        processed on its own; failed pages are recorded and skipped.

        Args:
            request: Material and its rendered pages

        Returns:
            IngestionResult with blocks and units in page order

        Raises:
            IngestionError: If every page failed
            ExtractionFailure, LLMError: From the text-only pass
        """
        resource = create_resource(
            request.file_name,
            notes=request.notes,
            material_category=request.material_category,
            storage_url=request.storage_url,
        )
        self.logger.info(
            f"Ingesting {resource.file_name} as {resource.material_category.value} "
            f"({len(request.pages)} pages)"
        )

        if request.pages:
            blocks, units, failures = await self._ingest_pages(resource, request.pages)
        else:
            blocks = await extract_content_blocks(resource, self._client())
            units = await generate_learning_units(resource, blocks, self._client())
            failures = []

        result = IngestionResult(
            resource=resource, blocks=blocks, units=units, failures=failures
        )
        if self.validate_output:
            issues = validate_ingestion_result(result)
            result = result.model_copy(update={"quality_issues": issues})

        self.logger.info(
            f"Ingested {resource.title}: {len(blocks)} blocks, {len(units)} units, "
            f"{len(failures)} failed pages"
        )
        return result

    async def _process_page(
        self, resource: Resource, page: PageImage
    ) -> tuple[list[ContentBlock], list[LearningUnit]]:
        """Extract blocks and units from one page."""
        image_urls = [page.url]
        blocks = await extract_content_blocks(resource, self._client(), image_urls)
        units = await generate_learning_units(
            resource,
            blocks,
            self._client(),
            image_urls,
            page_number=page.page_number,
        )
        return blocks, units

    async def _ingest_pages(
        self, resource: Resource, pages: list[PageImage]
    ) -> tuple[list[ContentBlock], list[LearningUnit], list[PageFailure]]:
        pages = sorted(pages, key=lambda p: p.page_number)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def process_with_semaphore(page: PageImage):
            async with semaphore:
                self.logger.info(f"Processing page {page.page_number}/{len(pages)}")
                return await self._process_page(resource, page)

        page_results = await asyncio.gather(
            *[process_with_semaphore(page) for page in pages], return_exceptions=True
        )

        blocks: list[ContentBlock] = []
        units: list[LearningUnit] = []
        failures: list[PageFailure] = []
        block_ids: set[str] = set()
        unit_ids: set[str] = set()

        for page, result in zip(pages, page_results):
            if isinstance(result, Exception):
                self.logger.warning(f"Page {page.page_number} failed: {result}")
                failures.append(
                    PageFailure(
                        page_number=page.page_number,
                        error_code=getattr(result, "error_code", "page_error"),
                        message=str(result),
                    )
                )
                continue

            page_blocks, page_units = result
            renamed = ensure_unique_block_ids(page_blocks, block_ids)
            id_map = {old.id: new.id for old, new in zip(page_blocks, renamed)}
            page_units = [
                unit.model_copy(
                    update={
                        "source_block_ids": [
                            id_map.get(block_id, block_id)
                            for block_id in unit.source_block_ids
                        ]
                    }
                )
                for unit in page_units
            ]
            blocks.extend(renamed)
            units.extend(dedupe_ids(page_units, unit_ids))

        if len(failures) == len(pages):
            raise IngestionError(
                f"All {len(pages)} pages of {resource.file_name} failed",
                details={"failures": [f.model_dump() for f in failures]},
            )
        return blocks, units, failures
