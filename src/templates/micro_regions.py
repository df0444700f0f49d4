"""Micro-region sourcing requirements.

Per origin country a template may restrict which growing sub-regions a lot
can come from, optionally with a share range per region and whether lots
may blend regions.
"""

from __future__ import annotations

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult
from src.templates.config import TemplateValidationConfig

POPULAR_COFFEE_ORIGINS: tuple[str, ...] = (
    "Brazil",
    "Peru",
    "Colombia",
    "Guatemala",
    "Mexico",
    "El Salvador",
    "Nicaragua",
    "Honduras",
)


class MicroRegionPercentageConstraint(QualityEngineBase, frozen=True):
    min: float | None = None
    max: float | None = None


class MicroRegionRequirement(QualityEngineBase, frozen=True):
    """Sub-region rules for one origin."""

    origin: str
    required_micro_regions: list[str] = Field(default_factory=list)
    percentage_per_region: dict[str, MicroRegionPercentageConstraint] | None = None
    allow_mix: bool = True
    notes: str | None = None


class MicroRegionConfiguration(QualityEngineBase, frozen=True):
    requirements: list[MicroRegionRequirement] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.requirements


class PercentageTotals(QualityEngineBase, frozen=True):
    min: float
    max: float


def create_empty_micro_region_configuration() -> MicroRegionConfiguration:
    return MicroRegionConfiguration()


def create_origin_requirement(origin: str, allow_mix: bool = True) -> MicroRegionRequirement:
    return MicroRegionRequirement(origin=origin, percentage_per_region={}, allow_mix=allow_mix)


def validate_micro_region_configuration(
    config: MicroRegionConfiguration,
    limits: TemplateValidationConfig | None = None,
) -> ValidationResult:
    """Origins present and unique; per-region percentages in bounds, min <= max."""
    cfg = limits or TemplateValidationConfig()
    seen: set[str] = set()

    for requirement in config.requirements:
        origin = requirement.origin.strip()
        if not origin:
            return ValidationResult.fail("Origin is required for each requirement")
        if origin.lower() in seen:
            return ValidationResult.fail(f'Duplicate micro-region requirement for origin "{origin}"')
        seen.add(origin.lower())

        for region, constraint in (requirement.percentage_per_region or {}).items():
            for value, label in ((constraint.min, "Minimum"), (constraint.max, "Maximum")):
                if value is not None and not cfg.percentage_min <= value <= cfg.percentage_max:
                    return ValidationResult.fail(
                        f'{label} percentage for "{region}" must be between '
                        f"{cfg.percentage_min:g} and {cfg.percentage_max:g}"
                    )
            if (
                constraint.min is not None
                and constraint.max is not None
                and constraint.min > constraint.max
            ):
                return ValidationResult.fail(
                    f'Minimum percentage cannot exceed maximum for "{region}"'
                )

    return ValidationResult.ok()


def get_micro_region_requirement_display_text(requirement: MicroRegionRequirement) -> str:
    if not requirement.required_micro_regions:
        return "Any micro-region"
    regions = ", ".join(requirement.required_micro_regions)
    mix = " (mix allowed)" if requirement.allow_mix else " (single region only)"
    return f"{regions}{mix}"


def get_total_percentage_constraints(requirement: MicroRegionRequirement) -> PercentageTotals:
    """Sum of per-region minimums and maximums.

    An unset ``percentage_per_region`` means the full 0-100 span.
    """
    if requirement.percentage_per_region is None:
        return PercentageTotals(min=0, max=100)
    constraints = requirement.percentage_per_region.values()
    return PercentageTotals(
        min=sum(c.min for c in constraints if c.min is not None),
        max=sum(c.max for c in constraints if c.max is not None),
    )
