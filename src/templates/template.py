"""QualityTemplate root aggregate and its JSON serialization.

A template owns every configuration object by value; none of them has an
identity or lifecycle outside it. Serialization uses JSON mode with unset
(``None``) fields omitted, and reading it back through ``model_validate``
restores an equal value.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import Field

from src.models.common import (
    QualityEngineBase,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)
from src.templates.aspects import AspectConfiguration
from src.templates.cupping import CuppingAttribute
from src.templates.defects import DefectConfiguration
from src.templates.micro_regions import MicroRegionConfiguration
from src.templates.screen_sizes import ScreenSizeRequirements
from src.templates.sharing import PrivateScope, SharingScope
from src.templates.taints_faults import TaintFaultConfiguration


class MoistureStandard(StrEnum):
    """Reference method the moisture bounds are expressed in."""

    COFFEE_INDUSTRY = "coffee_industry"
    ISO_6673 = "iso_6673"


class LocalizedText(QualityEngineBase, frozen=True):
    """Display text in the supported locales; English is required."""

    en: str
    pt: str | None = None
    es: str | None = None


class TemplateParameters(QualityEngineBase, frozen=True):
    """Every grading rule a template can carry."""

    sample_size_grams: float | None = None
    screen_size_requirements: ScreenSizeRequirements = Field(
        default_factory=ScreenSizeRequirements,
    )
    green_aspect_configuration: AspectConfiguration | None = None
    defect_configuration: DefectConfiguration | None = None
    moisture_min: float | None = None
    moisture_max: float | None = None
    moisture_standard: MoistureStandard = MoistureStandard.COFFEE_INDUSTRY
    roast_aspect_configuration: AspectConfiguration | None = None
    roast_sample_size_grams: float | None = None
    max_quakers: int | None = None
    cupping_attributes: list[CuppingAttribute] = Field(default_factory=list)
    taint_fault_configuration: TaintFaultConfiguration | None = None
    micro_region_configuration: MicroRegionConfiguration | None = None


class QualityTemplate(QualityEngineBase, frozen=True):
    """A versioned, shareable set of grading rules for one origin."""

    template_id: UUIDv7 = Field(default_factory=new_uuid7)
    name: LocalizedText
    description: LocalizedText | None = None
    origin: str
    version: int = Field(default=1, ge=1)
    parameters: TemplateParameters = Field(default_factory=TemplateParameters)
    is_active: bool = True
    sharing: SharingScope = Field(default_factory=PrivateScope)
    created_by: UUID
    template_parent_id: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


def serialize_parameters(parameters: TemplateParameters) -> dict[str, Any]:
    return parameters.model_dump(mode="json", exclude_none=True)


def deserialize_parameters(data: dict[str, Any]) -> TemplateParameters:
    """Raises ``pydantic.ValidationError`` for malformed data."""
    return TemplateParameters.model_validate(data)


def serialize_template(template: QualityTemplate) -> dict[str, Any]:
    return template.model_dump(mode="json", exclude_none=True)


def deserialize_template(data: dict[str, Any]) -> QualityTemplate:
    """Raises ``pydantic.ValidationError`` for malformed data."""
    return QualityTemplate.model_validate(data)
