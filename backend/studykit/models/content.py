"""
Content Graph Data Models (Pydantic)

Pydantic models for the records produced by ingestion. A Resource owns
ContentBlocks; blocks are the knowledge segments the model found in the
material and the anchor of every LearningUnit (see models/learning.py).

Models:
- Resource: One uploaded study material
- ContentBlock: Canonical knowledge segment extracted from a resource
- PageImage: Already-resolved locator of one rendered page

Usage:
    from studykit.enums import BlockCategory
    from studykit.models.content import ContentBlock

    block = ContentBlock(
        id="b-1",
        resource_id="r-1",
        category=BlockCategory.CONCEPT,
        title="比喻的种类",
    )
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from studykit.enums.content import BlockCategory, MaterialCategory, ResourceSource
from studykit.models.base import FrozenModel


class Resource(FrozenModel):
    """
    One uploaded study material.

    Attributes:
        id: Unique identifier ("r-<hex>")
        title: Display title (file name without extension)
        source: Where the material came from
        file_name: Original file name
        material_category: pdf, exercise, video or image
        created_at: Creation timestamp
        notes: Free-form notes from the uploader
        storage_url: Already-resolved object storage locator
    """

    id: str = Field(..., description="Resource identifier")
    title: str = Field(..., description="Display title")
    source: ResourceSource = Field(default=ResourceSource.UPLOAD)
    file_name: str = Field(..., description="Original file name")
    material_category: MaterialCategory = Field(default=MaterialCategory.PDF)
    created_at: datetime = Field(default_factory=datetime.now)
    notes: Optional[str] = Field(default=None)
    storage_url: Optional[str] = Field(
        default=None, description="Resolved storage locator, never fetched here"
    )


class ContentBlock(FrozenModel):
    """
    Canonical knowledge segment extracted from a resource.

    Produced only by the content normalizer, so every field already holds a
    value of the declared type: difficulty is clamped to 1-5, locators are
    numeric or absent, optional strings are non-empty or absent.

    Attributes:
        id: Identifier, unique within the resource
        resource_id: Owning resource
        category: Block category from the closed set
        title: Display title (also the title of the unit built from it)
        summary: One or two sentence summary
        topic: Topic / chapter label
        difficulty: 1 (easiest) to 5 (hardest)
        page_start / page_end: Page locators for documents
        time_start_sec / time_end_sec: Time locators for videos
        tags: Free-form tags
        image_urls: Resolved page image locators used as visual context
    """

    id: str = Field(..., description="Block identifier")
    resource_id: str = Field(..., description="Owning resource identifier")
    category: BlockCategory = Field(default=BlockCategory.OTHER)
    title: str = Field(..., description="Block title")
    summary: Optional[str] = Field(default=None)
    topic: Optional[str] = Field(default=None)
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    page_start: Optional[int] = Field(default=None)
    page_end: Optional[int] = Field(default=None)
    time_start_sec: Optional[float] = Field(default=None)
    time_end_sec: Optional[float] = Field(default=None)
    tags: Optional[list[str]] = Field(default=None)
    image_urls: list[str] = Field(default_factory=list)


class PageImage(FrozenModel):
    """A rendered page of a resource, addressed by an already-resolved URL."""

    page_number: int = Field(..., ge=1, description="1-based page number")
    url: str = Field(..., description="Resolved image locator")
