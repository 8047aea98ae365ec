"""
LLM Service Module

Provides a unified interface to multiple LLM providers via LiteLLM.

Key Components:
- client.py: LLMClient class with text and vision completion methods

All methods return the raw response text.

Usage:
    from studykit.enums import PipelineOperation
    from studykit.services.llm import build_messages, get_llm_client

    client = get_llm_client()
    text = await client.complete(
        operation=PipelineOperation.UNIT_GENERATION,
        messages=build_messages("..."),
    )
"""

from studykit.services.llm.client import (
    LLMClient,
    attach_images,
    build_messages,
    complete_with_fallback,
    get_llm_client,
    reset_llm_client,
)

__all__ = [
    "LLMClient",
    "attach_images",
    "build_messages",
    "complete_with_fallback",
    "get_llm_client",
    "reset_llm_client",
]
