"""Shared types, base models, and result shapes used across the template engine."""

from datetime import datetime, timezone
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]


# --- Base model ---


class QualityEngineBase(BaseModel):
    """Base model with common configuration for all engine Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "protected_namespaces": (),
        "extra": "forbid",
        "allow_inf_nan": False,
    }


# --- Validation results ---


class ValidationResult(QualityEngineBase, frozen=True):
    """Outcome of a single component validator.

    ``error`` is only set when ``valid`` is False.
    """

    valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


class TemplateValidationResult(QualityEngineBase, frozen=True):
    """Aggregated outcome of a whole-template validation pass.

    ``errors`` holds at most one message per failing component; ``warnings``
    holds soft inconsistencies that never affect ``valid``.
    """

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
