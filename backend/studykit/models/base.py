"""
Base Models for the Content Graph and Session Snapshots

This module provides base classes with the validation settings shared by every
model in the package.

MOTIVATION:
    Model output is untrusted and session state is replaced, never edited.
    By enforcing these settings at the base:
    - Unknown fields are rejected (extra="forbid")
    - Records cannot be mutated after construction (frozen=True)
    - Enum fields are validated from their wire values

Usage:
    # For records of the content graph (immutable)
    class ContentBlock(FrozenModel):
        id: str
        title: str

    # For inputs assembled by callers
    class IngestionRequest(StrictModel):
        file_name: str

Architecture:
    Raw model text → Recovery Parser → dicts → normalizers → FrozenModel records
    Session action → new SessionState (FrozenModel) via model_copy(update=...)
"""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """
    Base model for caller-assembled inputs.

    Rejects any fields not explicitly declared in the model, catching
    typos at construction time rather than deep in a pipeline.

    Features:
        - extra="forbid": Unknown fields raise ValidationError
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings

    Example:
        >>> class PageRef(StrictModel):
        ...     page_number: int
        >>>
        >>> PageRef(page_number=1)  # OK
        >>> PageRef(page=1)  # Raises ValidationError
    """

    model_config = ConfigDict(
        extra="forbid",  # Reject unknown fields
        validate_default=True,  # Validate defaults
        str_strip_whitespace=True,  # Clean string inputs
    )


class FrozenModel(BaseModel):
    """
    Base model for immutable records.

    Content graph records (resources, blocks, units) and session snapshots
    are never edited in place. A change produces a new instance through
    `model_copy(update=...)`.

    Features:
        - frozen=True: Attribute assignment raises ValidationError
        - extra="forbid": Unknown fields raise ValidationError
        - validate_default=True: Validates default values

    Note: `model_copy(update=...)` skips validation, so callers pass values
    of the declared types.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
    )
