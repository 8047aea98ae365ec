"""
Pipeline-related enums.

Defines enums for LLM operations and JSON recovery.
"""

from enum import Enum


class PipelineOperation(str, Enum):
    """
    Operation types for LLM calls.

    Used by LLMClient to label log lines and errors.
    """

    BLOCK_EXTRACTION = "BLOCK_EXTRACTION"
    UNIT_GENERATION = "UNIT_GENERATION"


class RecoveryStrategy(str, Enum):
    """
    How the recovery parser got its values out of a model response.

    - DIRECT: the outermost bracketed slice parsed as one JSON value
    - BRACE_SCAN: the slice failed and top-level objects were recovered one
      by one from a brace-balanced scan
    """

    DIRECT = "direct"
    BRACE_SCAN = "brace_scan"
