"""
Unified LLM Client supporting multiple providers via LiteLLM.

LiteLLM provides a unified interface to 100+ LLM providers using
the format "provider/model-name". Key features:
- Operation-based labelling via PipelineOperation enum
- Separate text and vision models from settings
- Automatic retries with exponential backoff
- Native async support

The client returns raw response text. Turning that text into JSON is the
job of the recovery parser (pipelines/utils/text_utils.py), which keeps
whatever can be saved from a malformed response.

See: https://docs.litellm.ai/

Usage:
    from studykit.enums import PipelineOperation
    from studykit.services.llm import build_messages, get_llm_client

    client = get_llm_client()

    text = await client.complete(
        operation=PipelineOperation.BLOCK_EXTRACTION,
        messages=build_messages("请拆解以下学习资料..."),
    )

    text = await client.complete_with_images(
        operation=PipelineOperation.BLOCK_EXTRACTION,
        messages=build_messages("请根据截图拆解..."),
        images=["https://.../page-1.png"],
    )
"""

import logging
import os
import time
from typing import Any, Optional, Union

import litellm
from litellm import acompletion
from tenacity import retry, stop_after_attempt, wait_exponential

from studykit.config.settings import settings
from studykit.enums.pipeline import PipelineOperation
from studykit.errors import LLMError

logger = logging.getLogger(__name__)

# Configure LiteLLM
litellm.drop_params = True  # Drop unsupported params instead of erroring
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"


def build_messages(
    prompt: str,
    system_prompt: Optional[str] = None,
) -> list[dict[str, str]]:
    """
    Build messages list from prompt and optional system prompt.

    Args:
        prompt: User prompt text
        system_prompt: Optional system prompt

    Returns:
        List of message dicts for LLM API
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def attach_images(messages: list[dict], images: list[str]) -> list[dict]:
    """
    Attach image locators to the user messages.

    Args:
        messages: Chat messages with text content
        images: Image URLs, or base64-encoded JPEG data

    Returns:
        New message list in the OpenAI multi-part content format
    """
    formatted_messages = []
    for msg in messages:
        if msg["role"] == "user" and images:
            content = [{"type": "text", "text": msg["content"]}]
            for img in images:
                if img.startswith(("http", "data:")):
                    content.append({"type": "image_url", "image_url": {"url": img}})
                else:
                    content.append(
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{img}"},
                        }
                    )
            formatted_messages.append({"role": "user", "content": content})
        else:
            formatted_messages.append(msg)
    return formatted_messages


class LLMClient:
    """
    LLM client returning raw completion text.

    Text calls use settings.TEXT_MODEL and calls with page images use
    settings.VISION_MODEL, unless a model is passed explicitly. Failures
    are retried with exponential backoff and then raised as LLMError.
    """

    def __init__(
        self,
        text_model: Optional[str] = None,
        vision_model: Optional[str] = None,
    ):
        """Initialize the LLM client and check that a provider key is set."""
        self.text_model = text_model or settings.TEXT_MODEL
        self.vision_model = vision_model or settings.VISION_MODEL
        self._validate_api_keys()

    def _validate_api_keys(self):
        """Log which providers have keys configured."""
        available_keys = []

        if os.getenv("OPENAI_API_KEY") or settings.OPENAI_API_KEY:
            available_keys.append("OpenAI")
        if os.getenv("ANTHROPIC_API_KEY") or settings.ANTHROPIC_API_KEY:
            available_keys.append("Anthropic")
        if os.getenv("GEMINI_API_KEY") or settings.GEMINI_API_KEY:
            available_keys.append("Google/Gemini")

        if not available_keys:
            logger.warning(
                "No LLM API keys configured. Set at least one of: "
                "OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY"
            )
        else:
            logger.info(f"LLM client initialized with providers: {available_keys}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def _acompletion(self, **kwargs: Any) -> str:
        response = await acompletion(**kwargs)
        return response.choices[0].message.content or ""

    async def _run(
        self,
        operation: Union[PipelineOperation, str],
        model: str,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
    ) -> str:
        operation = getattr(operation, "value", operation)
        start_time = time.perf_counter()
        try:
            content = await self._acompletion(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"LLM completion failed: {e} (model={model})")
            raise LLMError(
                f"{operation} call failed: {e}",
                details={"model": model, "operation": operation},
            ) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(
            f"LLM completion [{model}] {operation} - "
            f"{len(content)} chars, latency {latency_ms}ms"
        )
        return content

    async def complete(
        self,
        operation: Union[PipelineOperation, str],
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 4096,
        model: Optional[str] = None,
    ) -> str:
        """
        Generate a text-only completion.

        Args:
            operation: PipelineOperation the call belongs to (for logs and errors)
            messages: Chat messages in OpenAI format
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            model: Optional model override

        Returns:
            Raw response text

        Raises:
            LLMError: If the call fails after retries
        """
        return await self._run(
            operation, model or self.text_model, messages, temperature, max_tokens
        )

    async def complete_with_images(
        self,
        operation: Union[PipelineOperation, str],
        messages: list[dict],
        images: list[str],
        temperature: float = 0.3,
        max_tokens: int = 4096,
        model: Optional[str] = None,
    ) -> str:
        """
        Generate a completion with image inputs.

        Args:
            operation: PipelineOperation the call belongs to (for logs and errors)
            messages: Chat messages with text content
            images: Image URLs or base64-encoded images
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            model: Optional model override

        Returns:
            Raw response text

        Raises:
            LLMError: If the call fails after retries
        """
        return await self._run(
            operation,
            model or self.vision_model,
            attach_images(messages, images),
            temperature,
            max_tokens,
        )


async def complete_with_fallback(
    llm_client: LLMClient,
    operation: Union[PipelineOperation, str],
    messages: list[dict],
    images: Optional[list[str]] = None,
    temperature: float = 0.3,
    max_tokens: int = 4096,
) -> str:
    """
    Call the vision model when images are given, falling back to text.

    A failed vision call is retried once as a text-only call with the same
    messages. A failed text-only call propagates.

    Args:
        llm_client: Client (or any object with the same completion methods)
        operation: PipelineOperation the call belongs to
        messages: Chat messages with text content
        images: Resolved image locators; empty or None means text-only
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response

    Returns:
        Raw response text

    Raises:
        LLMError: If the text-only call fails
    """
    if images:
        try:
            return await llm_client.complete_with_images(
                operation=operation,
                messages=messages,
                images=images,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except LLMError as e:
            logger.warning(f"Vision call failed, retrying as text-only: {e.message}")

    return await llm_client.complete(
        operation=operation,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )


# Singleton instance
_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """
    Get or create singleton LLM client.

    Returns:
        Shared LLMClient instance
    """
    global _client
    if _client is None:
        _client = LLMClient()
    return _client


def reset_llm_client():
    """Reset the singleton client (useful for testing)."""
    global _client
    _client = None
