"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests: sample
blocks and units, a mocked LLM client and a seeded exercise session.
"""

import os
import random
import sys
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from studykit.enums import BlockCategory, ExerciseKind, MaterialCategory, UnitKind
from studykit.models.content import ContentBlock, Resource
from studykit.models.learning import LearningUnit
from studykit.services.learning.session_service import ExerciseSession


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    Overrides values from .env files so tests never reach a real provider.
    """
    original_env = os.environ.copy()

    test_env = {
        "OPENAI_API_KEY": "test-api-key",
        "TEXT_MODEL": "openai/test-text-model",
        "VISION_MODEL": "openai/test-vision-model",
        "DEBUG": "false",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Sample Content
# ============================================================================


@pytest.fixture
def sample_resource() -> Resource:
    """A pdf resource as created for an upload."""
    return Resource(
        id="r-test",
        title="三年级语文第三单元",
        file_name="三年级语文第三单元.pdf",
        material_category=MaterialCategory.PDF,
    )


@pytest.fixture
def sample_blocks() -> list[ContentBlock]:
    """Three normalized blocks from one page."""
    return [
        ContentBlock(
            id="b-1",
            resource_id="r-test",
            category=BlockCategory.VOCABULARY,
            title="生字词：碧绿",
            summary="会写“碧绿”",
        ),
        ContentBlock(
            id="b-2",
            resource_id="r-test",
            category=BlockCategory.CONCEPT,
            title="多音字：长",
        ),
        ContentBlock(
            id="b-3",
            resource_id="r-test",
            category=BlockCategory.EXAMPLE,
            title="近反义词",
        ),
    ]


def make_unit(
    exercise_kind=None,
    payload=None,
    title: str = "测试单元",
    unit_id: str = "u-test",
) -> LearningUnit:
    """Build a todo unit around a payload."""
    return LearningUnit(
        id=unit_id,
        title=title,
        kind=UnitKind.QUIZ,
        exercise_kind=exercise_kind,
        payload=payload,
        source_block_ids=["b-1"],
    )


@pytest.fixture
def choice_unit() -> LearningUnit:
    """Two choice questions."""
    return make_unit(
        ExerciseKind.CHOICE,
        {
            "type": "choice",
            "questions": [
                {"question": "“长”在“长大”中读", "options": ["cháng", "zhǎng"], "correct": 1},
                {"question": "选出比喻句", "options": ["A", "B", "C"], "correct": 0},
            ],
        },
    )


@pytest.fixture
def matching_unit() -> LearningUnit:
    """One board of three antonym pairs."""
    return make_unit(
        ExerciseKind.MATCHING,
        {
            "type": "matching",
            "items": [
                {"left": "大", "right": "小"},
                {"left": "高", "right": "矮"},
                {"left": "长", "right": "短"},
            ],
        },
    )


@pytest.fixture
def fill_blank_unit() -> LearningUnit:
    """One fill-in sentence."""
    return make_unit(
        ExerciseKind.FILL_BLANK,
        {
            "type": "fill_blank",
            "questions": [{"sentence": "这里的风景真( )啊！", "answer": "美"}],
        },
    )


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """
    Create a mock LLM client for unit testing.

    Both completion methods return an empty JSON array unless a test sets
    its own return value or side effect.
    """
    client = MagicMock()
    client.complete = AsyncMock(return_value="[]")
    client.complete_with_images = AsyncMock(return_value="[]")
    return client


@pytest.fixture
def session() -> ExerciseSession:
    """Exercise session with a seeded shuffle."""
    return ExerciseSession(rng=random.Random(7))
