"""
Unit tests for the material ingestion pipeline.

The LLM client is mocked; responses are keyed by operation and page image so
the tests do not depend on call order.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from studykit.enums import (
    BlockCategory,
    ExerciseKind,
    MaterialCategory,
    PipelineOperation,
    ResourceSource,
)
from studykit.errors import ExtractionFailure, IngestionError, LLMError
from studykit.models.content import PageImage
from studykit.models.processing import IngestionRequest
from studykit.pipelines.material_ingestion import (
    MaterialIngestionPipeline,
    create_resource,
    infer_material_category,
)


# =============================================================================
# Helper Functions
# =============================================================================


def make_blocks_response(*titles: str) -> str:
    """Block-extraction response that always numbers ids from b-1."""
    blocks = [
        {"id": f"b-{i + 1}", "type": "vocabulary", "title": title, "difficulty": 2}
        for i, title in enumerate(titles)
    ]
    return "```json\n" + json.dumps(blocks, ensure_ascii=False) + "\n```"


def make_units_response(*titles: str) -> str:
    units = [
        {
            "id": "u-1",
            "title": title,
            "kind": "quiz",
            "payload": {
                "type": "choice",
                "questions": [{"question": title, "options": ["a", "b"], "correct": 0}],
            },
        }
        for title in titles
    ]
    return json.dumps(units, ensure_ascii=False)


def make_client(pages: dict[str, tuple]) -> MagicMock:
    """
    Mock client serving responses per page image.

    Args:
        pages: url → (blocks response or exception, units response or exception)
    """

    async def complete_with_images(operation, messages, images, **kwargs):
        blocks, units = pages[images[0]]
        value = blocks if operation == PipelineOperation.BLOCK_EXTRACTION else units
        if isinstance(value, Exception):
            raise value
        return value

    client = MagicMock()
    client.complete_with_images = AsyncMock(side_effect=complete_with_images)
    client.complete = AsyncMock(side_effect=LLMError("text model down"))
    return client


def page(number: int) -> PageImage:
    return PageImage(page_number=number, url=f"https://cdn.test/p{number}.png")


# =============================================================================
# Resource Creation
# =============================================================================


class TestResourceCreation:
    """Tests for category inference and resource records."""

    @pytest.mark.parametrize(
        "file_name, expected",
        [
            ("lesson.MP4", MaterialCategory.VIDEO),
            ("古诗讲解视频.pdf", MaterialCategory.VIDEO),
            ("scan.jpeg", MaterialCategory.IMAGE),
            ("三年级期末真题.pdf", MaterialCategory.EXERCISE),
            ("第一单元习题.docx", MaterialCategory.EXERCISE),
            ("课文.pdf", MaterialCategory.PDF),
        ],
    )
    def test_infer_material_category(self, file_name, expected):
        assert infer_material_category(file_name) == expected

    def test_create_resource(self):
        resource = create_resource("三年级.上册.pdf", notes="第三单元")

        assert resource.id.startswith("r-")
        assert resource.title == "三年级.上册"
        assert resource.file_name == "三年级.上册.pdf"
        assert resource.source == ResourceSource.UPLOAD
        assert resource.material_category == MaterialCategory.PDF
        assert resource.notes == "第三单元"

    def test_explicit_category_wins(self):
        resource = create_resource("课文.pdf", material_category=MaterialCategory.EXERCISE)
        assert resource.material_category == MaterialCategory.EXERCISE


# =============================================================================
# Batch Ingestion
# =============================================================================


class TestIngest:
    """Tests for MaterialIngestionPipeline.ingest."""

    @pytest.mark.asyncio
    async def test_pages_in_order_with_unique_ids(self):
        client = make_client(
            {
                "https://cdn.test/p1.png": (
                    make_blocks_response("碧绿", "多音字"),
                    make_units_response("碧绿", "多音字"),
                ),
                "https://cdn.test/p2.png": (
                    make_blocks_response("近义词"),
                    make_units_response("近义词"),
                ),
            }
        )
        pipeline = MaterialIngestionPipeline(llm_client=client, validate_output=False)

        result = await pipeline.ingest(
            IngestionRequest(file_name="语文.pdf", pages=[page(2), page(1)])
        )

        assert [b.title for b in result.blocks] == ["碧绿", "多音字", "近义词"]
        assert [b.id for b in result.blocks] == ["b-1", "b-2", "b-1-2"]
        assert [u.title for u in result.units] == ["碧绿", "多音字", "近义词"]
        assert [u.page_number for u in result.units] == [1, 1, 2]
        assert len({u.id for u in result.units}) == 3
        assert result.units[2].source_block_ids == ["b-1-2"]
        assert result.blocks[2].image_urls == ["https://cdn.test/p2.png"]
        assert all(u.exercise_kind == ExerciseKind.CHOICE for u in result.units)
        assert not result.is_partial

    @pytest.mark.asyncio
    async def test_failed_page_is_recorded_and_skipped(self):
        client = make_client(
            {
                "https://cdn.test/p1.png": ("no json at all", "[]"),
                "https://cdn.test/p2.png": (
                    make_blocks_response("近义词"),
                    make_units_response("近义词"),
                ),
            }
        )
        pipeline = MaterialIngestionPipeline(llm_client=client, validate_output=False)

        result = await pipeline.ingest(
            IngestionRequest(file_name="语文.pdf", pages=[page(1), page(2)])
        )

        assert [b.title for b in result.blocks] == ["近义词"]
        assert len(result.units) == 1
        assert result.is_partial
        assert result.failures[0].page_number == 1
        assert result.failures[0].error_code == "extraction_failure"

    @pytest.mark.asyncio
    async def test_all_pages_failed_raises(self):
        client = make_client(
            {
                "https://cdn.test/p1.png": ("oops", "[]"),
                "https://cdn.test/p2.png": (make_blocks_response("a"), "also not json"),
            }
        )
        pipeline = MaterialIngestionPipeline(llm_client=client)

        with pytest.raises(IngestionError) as exc_info:
            await pipeline.ingest(
                IngestionRequest(file_name="语文.pdf", pages=[page(1), page(2)])
            )

        failures = exc_info.value.details["failures"]
        assert [f["page_number"] for f in failures] == [1, 2]

    @pytest.mark.asyncio
    async def test_vision_failure_falls_back_to_text(self):
        client = make_client({})
        client.complete_with_images = AsyncMock(side_effect=LLMError("vision down"))
        client.complete = AsyncMock(
            side_effect=[make_blocks_response("碧绿"), make_units_response("碧绿")]
        )
        pipeline = MaterialIngestionPipeline(llm_client=client, validate_output=False)

        result = await pipeline.ingest(IngestionRequest(file_name="语文.pdf", pages=[page(1)]))

        assert [b.title for b in result.blocks] == ["碧绿"]
        assert client.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_text_only_ingest_propagates_errors(self, mock_llm_client):
        mock_llm_client.complete = AsyncMock(return_value="nothing here")
        pipeline = MaterialIngestionPipeline(llm_client=mock_llm_client)

        with pytest.raises(ExtractionFailure):
            await pipeline.ingest(IngestionRequest(file_name="语文.pdf"))

        mock_llm_client.complete_with_images.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_text_only_ingest(self, mock_llm_client):
        mock_llm_client.complete = AsyncMock(
            side_effect=[make_blocks_response("碧绿", "多音字"), make_units_response("多音字")]
        )
        pipeline = MaterialIngestionPipeline(llm_client=mock_llm_client)

        result = await pipeline.ingest(
            IngestionRequest(file_name="套卷.pdf", notes="期末复习")
        )

        assert result.resource.material_category == MaterialCategory.EXERCISE
        assert [u.title for u in result.units] == ["碧绿", "多音字"]
        assert result.units[0].exercise_kind is None
        assert result.units[1].exercise_kind == ExerciseKind.CHOICE
        assert result.blocks[0].category == BlockCategory.VOCABULARY
        assert any("blocks extracted" in issue for issue in result.quality_issues)

    @pytest.mark.asyncio
    async def test_no_blocks_skips_unit_generation(self, mock_llm_client):
        mock_llm_client.complete = AsyncMock(return_value="[]")
        pipeline = MaterialIngestionPipeline(llm_client=mock_llm_client)

        result = await pipeline.ingest(IngestionRequest(file_name="空白.pdf"))

        assert result.blocks == []
        assert result.units == []
        assert mock_llm_client.complete.await_count == 1
        assert "No content blocks extracted" in result.quality_issues

    @pytest.mark.asyncio
    async def test_parallel_pages_keep_page_order(self):
        pages = {
            f"https://cdn.test/p{n}.png": (
                make_blocks_response(f"块{n}"),
                make_units_response(f"块{n}"),
            )
            for n in range(1, 6)
        }
        pipeline = MaterialIngestionPipeline(
            llm_client=make_client(pages), max_concurrency=3, validate_output=False
        )

        result = await pipeline.ingest(
            IngestionRequest(file_name="语文.pdf", pages=[page(n) for n in (5, 3, 1, 4, 2)])
        )

        assert [b.title for b in result.blocks] == [f"块{n}" for n in range(1, 6)]
