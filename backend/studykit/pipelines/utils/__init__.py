"""Pipeline utilities for recovering JSON from model responses."""

from studykit.pipelines.utils.text_utils import (
    as_object_list,
    coerce_number,
    coerce_text,
    extract_json_from_response,
    first_present,
    recover_json,
    strip_code_fences,
)

__all__ = [
    "as_object_list",
    "coerce_number",
    "coerce_text",
    "first_present",
    "extract_json_from_response",
    "recover_json",
    "strip_code_fences",
]
