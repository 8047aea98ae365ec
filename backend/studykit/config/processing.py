"""
Processing Pipeline Configuration

Configuration settings for material ingestion: LLM sampling parameters,
prompt bounds, page-level concurrency, recovery diagnostics and the default
title for blocks the model left unnamed.

All settings can be overridden via environment variables with PROCESSING_ prefix.

Usage:
    from studykit.config.processing import processing_settings

    temperature = processing_settings.BLOCK_EXTRACTION_TEMPERATURE
    concurrency = processing_settings.MAX_PAGE_CONCURRENCY
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class ProcessingSettings(BaseSettings):
    """
    Processing pipeline configuration.

    Attributes are grouped by category:
    - LLM sampling for each stage
    - Prompt bounds
    - Batch ingestion
    - Recovery diagnostics
    - Default title for unnamed blocks
    """

    # =========================================================================
    # LLM SAMPLING
    # =========================================================================

    BLOCK_EXTRACTION_TEMPERATURE: float = 0.2
    BLOCK_EXTRACTION_MAX_TOKENS: int = 4096

    UNIT_GENERATION_TEMPERATURE: float = 0.3
    UNIT_GENERATION_MAX_TOKENS: int = 8192

    # =========================================================================
    # PROMPT BOUNDS
    # =========================================================================

    # Number of knowledge blocks requested per material (or per page)
    MIN_BLOCKS: int = 5
    MAX_BLOCKS: int = 15

    # =========================================================================
    # BATCH INGESTION
    # =========================================================================

    # Pages processed at once; 1 keeps the model calls strictly sequential
    MAX_PAGE_CONCURRENCY: int = 1

    # Run quality checks on the ingestion result and attach the issues
    VALIDATE_OUTPUT: bool = True

    # =========================================================================
    # RECOVERY DIAGNOSTICS
    # =========================================================================

    # Characters of a discarded candidate kept in its diagnostic preview
    DISCARD_PREVIEW_LENGTH: int = 50

    # =========================================================================
    # DEFAULT TITLES
    # =========================================================================

    DEFAULT_BLOCK_TITLE: str = "内容块 {index}"

    class Config:
        env_prefix = "PROCESSING_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_processing_settings() -> ProcessingSettings:
    """Get cached processing settings instance."""
    return ProcessingSettings()


# Convenience instance
processing_settings = get_processing_settings()
