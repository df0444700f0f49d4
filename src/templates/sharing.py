"""Template sharing scope.

A template is visible to every laboratory, to an explicit set of
laboratories, or only to its author. The three states are variants of one
tagged union, so "global and assigned" cannot be represented. Payloads that
still carry the legacy flag pair (``is_global`` + ``laboratory_ids``) are
converted with ``sharing_scope_from_flags``.
"""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from pydantic import Field

from src.models.common import QualityEngineBase


class GlobalScope(QualityEngineBase, frozen=True):
    """Visible to all laboratories."""

    kind: Literal["global"] = "global"


class LaboratoryScope(QualityEngineBase, frozen=True):
    """Visible to the listed laboratories (at least one)."""

    kind: Literal["laboratories"] = "laboratories"
    laboratory_ids: list[UUID] = Field(min_length=1)


class PrivateScope(QualityEngineBase, frozen=True):
    """Visible only to the template's author."""

    kind: Literal["private"] = "private"


SharingScope = Annotated[
    GlobalScope | LaboratoryScope | PrivateScope,
    Field(discriminator="kind"),
]


def sharing_scope_from_flags(
    is_global: bool,
    laboratory_ids: list[UUID] | None,
) -> GlobalScope | LaboratoryScope | PrivateScope:
    """Convert the flag pair into a scope.

    Raises:
        ValueError: If ``is_global`` is set together with laboratories.
    """
    labs = list(laboratory_ids or [])
    if is_global and labs:
        msg = "A global template cannot also be assigned to specific laboratories."
        raise ValueError(msg)
    if is_global:
        return GlobalScope()
    if labs:
        return LaboratoryScope(laboratory_ids=labs)
    return PrivateScope()


def to_flags(scope: GlobalScope | LaboratoryScope | PrivateScope) -> tuple[bool, list[UUID]]:
    """Inverse of ``sharing_scope_from_flags``: ``(is_global, laboratory_ids)``."""
    if isinstance(scope, GlobalScope):
        return True, []
    if isinstance(scope, LaboratoryScope):
        return False, list(scope.laboratory_ids)
    if isinstance(scope, PrivateScope):
        return False, []
    raise TypeError(f"Unsupported sharing scope: {type(scope).__name__}")


def is_visible_to(
    scope: GlobalScope | LaboratoryScope | PrivateScope,
    *,
    created_by: UUID,
    user_id: UUID,
    laboratory_id: UUID | None = None,
) -> bool:
    """Whether a user (optionally acting for a laboratory) can see the template.

    The author always sees their own template.
    """
    if user_id == created_by:
        return True
    if isinstance(scope, GlobalScope):
        return True
    if isinstance(scope, LaboratoryScope):
        return laboratory_id is not None and laboratory_id in scope.laboratory_ids
    if isinstance(scope, PrivateScope):
        return False
    raise TypeError(f"Unsupported sharing scope: {type(scope).__name__}")
