"""
Text Processing Utilities

Provides JSON recovery for generative-model responses. Model output is
free-form text: JSON may be wrapped in markdown fences, surrounded by prose,
truncated mid-object, or broken by a bad escape in one of many objects.
Recovery keeps every object that can be saved instead of failing the whole
response.

Usage:
    from studykit.pipelines.utils.text_utils import (
        as_object_list,
        extract_json_from_response,
        recover_json,
    )

    data = extract_json_from_response(llm_response)  # Raises ExtractionFailure
    blocks = as_object_list(data, ("blocks", "items"))  # Always a list of dicts

    result = recover_json(llm_response)
    if result.is_partial:
        for candidate in result.discarded:
            print(candidate.start, candidate.error)
"""

import json
import logging
import math
import re
from typing import Any, Iterable, Iterator, Optional

from studykit.config.processing import processing_settings
from studykit.enums.pipeline import RecoveryStrategy
from studykit.errors import ExtractionFailure
from studykit.models.processing import DiscardedCandidate, RecoveryResult

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```(?:json)?")
CONTROL_CHARS_PATTERN = re.compile(r"[\u0000-\u001F\u007F-\u009F]")

# Keys under which models tend to nest the list we asked for
DEFAULT_LIST_KEYS = ("blocks", "units", "items", "data", "results")


def strip_code_fences(text: str) -> str:
    """Remove ``` and ```json markers, keeping the fenced content."""
    return FENCE_PATTERN.sub("", text).strip()


def outermost_json_slice(text: str) -> str:
    """
    Slice from the first opening bracket to the last closing bracket.

    The first `{` or `[` (whichever comes first) starts the slice and the
    last `}` or `]` (whichever comes last) ends it. Text without any opening
    bracket is returned unchanged; a slice without a later closing bracket
    runs to the end of the text.

    Args:
        text: Fence-stripped response text

    Returns:
        Candidate JSON text
    """
    openings = [pos for pos in (text.find("{"), text.find("[")) if pos != -1]
    if not openings:
        return text

    start = min(openings)
    end = max(text.rfind("}"), text.rfind("]"))
    if end <= start:
        return text[start:]
    return text[start : end + 1]


def iter_balanced_objects(text: str) -> Iterator[tuple[int, int]]:
    """
    Yield (start, end) spans of top-level brace-balanced substrings.

    Depth is counted over `{` and `}` only, without regard to JSON strings,
    so a brace inside a string value shifts the spans; the candidate then
    fails to parse and is reported as discarded. A `}` at depth zero is
    ignored. An object left open at the end of the text yields nothing.

    Args:
        text: Full response text

    Yields:
        Tuples of (start offset, end offset exclusive)
    """
    depth = 0
    start = 0
    for pos, char in enumerate(text):
        if char == "{":
            if depth == 0:
                start = pos
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield start, pos + 1


def recover_json(text: Optional[str]) -> RecoveryResult:
    """
    Recover JSON values from a model response.

    Stage 1 strips code fences and parses the outermost bracketed slice as a
    single value. If that fails, stage 2 scans the full text for top-level
    brace-balanced objects, strips control characters from each and parses
    them independently, keeping those that parse and recording the rest as
    discarded candidates.

    Args:
        text: Raw model response

    Returns:
        RecoveryResult with the recovered values and diagnostics

    Raises:
        ExtractionFailure: If neither stage recovered anything
    """
    text = text or ""

    try:
        value = json.loads(outermost_json_slice(strip_code_fences(text)))
        return RecoveryResult(strategy=RecoveryStrategy.DIRECT, values=[value])
    except (json.JSONDecodeError, RecursionError) as e:
        logger.debug(f"Direct JSON parse failed, scanning for objects: {e}")

    preview_length = processing_settings.DISCARD_PREVIEW_LENGTH
    values: list[Any] = []
    discarded: list[DiscardedCandidate] = []

    for start, end in iter_balanced_objects(text):
        candidate = CONTROL_CHARS_PATTERN.sub("", text[start:end])
        try:
            values.append(json.loads(candidate))
        except (json.JSONDecodeError, RecursionError) as e:
            preview = candidate[:preview_length]
            logger.warning(f"Skipping unparseable object at {start}-{end}: {preview}")
            discarded.append(
                DiscardedCandidate(start=start, end=end, preview=preview, error=str(e))
            )

    if not values:
        raise ExtractionFailure(
            "No recoverable JSON in model response",
            details={
                "length": len(text),
                "discarded": [d.model_dump() for d in discarded],
            },
        )

    if discarded:
        logger.warning(
            f"Recovered {len(values)} objects, discarded {len(discarded)} candidates"
        )
    return RecoveryResult(
        strategy=RecoveryStrategy.BRACE_SCAN, values=values, discarded=discarded
    )


def extract_json_from_response(response_text: Optional[str]) -> Any:
    """
    Extract JSON from a model response.

    Handles various formats:
    - Raw JSON
    - JSON in ```json ... ``` or ``` ... ``` blocks
    - JSON surrounded by prose
    - Several objects where some are malformed (the rest are kept)

    Args:
        response_text: Model response text

    Returns:
        The parsed value, or a list of the objects recovered by brace scanning

    Raises:
        ExtractionFailure: If nothing could be recovered
    """
    return recover_json(response_text).value


def coerce_text(value: Any) -> Optional[str]:
    """
    Read a display string out of a recovered JSON value.

    Strings are stripped, numbers are formatted, everything else (None,
    booleans, containers, empty strings) counts as absent.

    Args:
        value: Any JSON value

    Returns:
        Non-empty string, or None
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return str(value)
    return None


def coerce_number(value: Any) -> Optional[float]:
    """
    Accept a value only if it is already numeric.

    Numeric strings are not converted. Booleans, NaN and infinities count
    as absent.

    Args:
        value: Any JSON value

    Returns:
        The number, or None
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def first_present(data: dict, *keys: str) -> Any:
    """Return the value of the first key present with a non-None value."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def as_object_list(
    data: Any, keys: Iterable[str] = DEFAULT_LIST_KEYS
) -> list[dict]:
    """
    Normalize a recovered value to a list of objects.

    Sometimes models return a list directly, sometimes a dict with the list
    under a key, sometimes a single object.

    Examples:
        # [{"title": "a"}, {"title": "b"}] → same list
        # {"blocks": [{"title": "a"}]} → [{"title": "a"}]
        # {"title": "a"} → [{"title": "a"}]

    Args:
        data: Value from extract_json_from_response
        keys: Keys that may hold the list, checked in order

    Returns:
        List of dicts; non-object entries are dropped
    """
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return [item for item in data[key] if isinstance(item, dict)]
        return [data]
    return []
