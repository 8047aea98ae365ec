"""
Error Types

Custom exception classes for the ingestion side of the system.

The exercise session engine never raises: rejected actions come back as a
TransitionOutcome with a TransitionSignal. Only ingestion raises, and only
for conditions the caller has to act on:

- ExtractionFailure: a model response held no recoverable JSON at all
- LLMError: the model call itself failed after retries
- IngestionError: a batch produced zero usable pages

Usage:
    from studykit.errors import ExtractionFailure

    try:
        data = extract_json_from_response(text)
    except ExtractionFailure as e:
        logger.warning(f"Nothing recoverable: {e.message}")
"""

from typing import Optional


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Model call failed", error_code="llm_error")
    """

    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details


class ExtractionFailure(ServiceError):
    """
    No balanced, parseable JSON object anywhere in a model response.

    Fatal to the ingestion call that produced the response. `details`
    carries the discarded candidates when brace scanning found some but
    none of them parsed.
    """

    error_code = "extraction_failure"


class LLMError(ServiceError):
    """
    LLM provider error.

    Raised when LLM API calls fail (rate limits, timeouts, etc.)
    """

    error_code = "llm_error"


class IngestionError(ServiceError):
    """
    Batch ingestion produced nothing.

    Raised when every page of a batch failed; per-page failures are
    recorded in `details["failures"]`.
    """

    error_code = "ingestion_error"
