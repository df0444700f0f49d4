"""Physical defect configuration.

Catalogued primary and secondary defects with per-defect weights (full
defect equivalents per occurrence) and aggregate thresholds. The two
categories are independent ordered lists: editing one never changes the
membership or display_order of the other.

Thresholds are stated for the template's declared ``sample_size_grams``.
``scale_defect_thresholds`` is the proportional-scaling contract for the
evaluation layer; the validator never rescales.

Deterministic -- no I/O.
"""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult, new_uuid7
from src.templates import ordering
from src.templates.config import TemplateValidationConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class DefectCategory(StrEnum):
    """Severity category of a green-bean defect."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class DefectDefinition(QualityEngineBase, frozen=True):
    """A countable defect and its weight in full-defect equivalents."""

    name: str
    category: DefectCategory
    weight: float
    display_order: int = 0
    description: str | None = None


class DefectThresholds(QualityEngineBase, frozen=True):
    """Aggregate limits in full-defect equivalents. Unset means unlimited."""

    max_primary: float | None = None
    max_secondary: float | None = None
    max_total: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.max_primary is None and self.max_secondary is None and self.max_total is None


class DefectConfiguration(QualityEngineBase, frozen=True):
    """Defect catalogue plus thresholds for one template."""

    defects: list[DefectDefinition] = Field(default_factory=list)
    thresholds: DefectThresholds = Field(default_factory=DefectThresholds)
    notes: str | None = None

    @property
    def is_empty(self) -> bool:
        """Never configured: no defects and no thresholds."""
        return not self.defects and self.thresholds.is_empty


class DefectTemplateCategory(StrEnum):
    ORIGIN = "origin"
    CLIENT = "client"
    CUSTOM = "custom"


class DefectTemplate(QualityEngineBase, frozen=True):
    """A reusable defect catalogue, usually per origin."""

    id: str
    name: str
    description: str
    origin: str | None = None
    category: DefectTemplateCategory
    configuration: DefectConfiguration
    is_system: bool = False


class DefectEvaluation(QualityEngineBase, frozen=True):
    """Defect totals for a counted sample and any threshold breaches."""

    primary_total: float
    secondary_total: float
    total: float
    valid: bool
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Category-scoped editing
# ---------------------------------------------------------------------------


def get_defects_by_category(
    defects: list[DefectDefinition],
    category: DefectCategory,
) -> list[DefectDefinition]:
    """Defects of one category in display order."""
    return ordering.sort_by_display_order([d for d in defects if d.category == category])


def _replace_category(
    config: DefectConfiguration,
    category: DefectCategory,
    members: list[DefectDefinition],
) -> DefectConfiguration:
    # Keep primary before secondary; the untouched category is copied as-is.
    others = [d for d in config.defects if d.category != category]
    renumbered = ordering.renumber(members)
    if category == DefectCategory.PRIMARY:
        defects = [*renumbered, *others]
    else:
        defects = [*others, *renumbered]
    return config.model_copy(update={"defects": defects})


def add_defect(
    config: DefectConfiguration,
    name: str,
    category: DefectCategory,
    weight: float,
    description: str | None = None,
) -> DefectConfiguration:
    """Append a defect to the end of its category."""
    members = get_defects_by_category(config.defects, category)
    members.append(DefectDefinition(
        name=name,
        category=category,
        weight=weight,
        display_order=len(members),
        description=description,
    ))
    return _replace_category(config, category, members)


def remove_defect(
    config: DefectConfiguration,
    category: DefectCategory,
    index: int,
) -> DefectConfiguration:
    """Remove the defect at ``index`` within its category.

    Raises:
        IndexError: If ``index`` is out of range for that category.
    """
    members = get_defects_by_category(config.defects, category)
    return _replace_category(config, category, ordering.remove_at(members, index))


def move_defect(
    config: DefectConfiguration,
    category: DefectCategory,
    index: int,
    direction: int,
) -> DefectConfiguration:
    """Move a defect one step up (-1) or down (+1) within its category."""
    members = get_defects_by_category(config.defects, category)
    return _replace_category(config, category, ordering.move(members, index, direction))


def set_thresholds(
    config: DefectConfiguration,
    *,
    max_primary: float | None = None,
    max_secondary: float | None = None,
    max_total: float | None = None,
) -> DefectConfiguration:
    """Replace the thresholds; omitted values become unlimited."""
    return config.model_copy(update={
        "thresholds": DefectThresholds(
            max_primary=max_primary,
            max_secondary=max_secondary,
            max_total=max_total,
        ),
    })


def create_empty_defect_configuration() -> DefectConfiguration:
    return DefectConfiguration()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_defect_configuration(
    config: DefectConfiguration,
    limits: TemplateValidationConfig | None = None,
) -> ValidationResult:
    """Check names, weights, and threshold signs.

    Threshold relationships (``max_total`` vs the per-category limits) are
    reported by ``check_threshold_consistency`` as warnings, not errors.
    """
    cfg = limits or TemplateValidationConfig()

    if not config.defects:
        return ValidationResult.fail("At least one defect is required")

    for category in DefectCategory:
        names = [
            d.name.strip().lower() for d in config.defects if d.category == category
        ]
        if any(not n for n in names):
            return ValidationResult.fail("Defect names cannot be empty")
        if len(set(names)) != len(names):
            return ValidationResult.fail(
                f"Duplicate {category.value} defect names are not allowed"
            )

    for defect in config.defects:
        if not defect.weight > 0:
            return ValidationResult.fail(
                f'Defect "{defect.name}" must have a weight greater than 0'
            )
        if defect.weight > cfg.max_defect_weight:
            return ValidationResult.fail(
                f'Defect "{defect.name}" weight seems unusually high '
                f"(>{cfg.max_defect_weight:g})"
            )

    thresholds = config.thresholds
    for field, label in (
        ("max_primary", "Max primary defects"),
        ("max_secondary", "Max secondary defects"),
        ("max_total", "Max total defects"),
    ):
        value = getattr(thresholds, field)
        if value is not None and not value >= 0:
            return ValidationResult.fail(f"{label} cannot be negative")

    return ValidationResult.ok()


def check_threshold_consistency(thresholds: DefectThresholds) -> list[str]:
    """Soft checks: a total limit stricter than a category limit.

    Such a template is legal but one of its limits can never bind.
    """
    warnings: list[str] = []
    if thresholds.max_total is None:
        return warnings
    if thresholds.max_primary is not None and thresholds.max_total < thresholds.max_primary:
        warnings.append(
            f"max_total ({thresholds.max_total:g}) is lower than max_primary "
            f"({thresholds.max_primary:g})"
        )
    if thresholds.max_secondary is not None and thresholds.max_total < thresholds.max_secondary:
        warnings.append(
            f"max_total ({thresholds.max_total:g}) is lower than max_secondary "
            f"({thresholds.max_secondary:g})"
        )
    return warnings


# ---------------------------------------------------------------------------
# Calculation helpers for the evaluation layer
# ---------------------------------------------------------------------------


def calculate_defect_equivalents(count: float, weight: float) -> float:
    """Full-defect equivalents for ``count`` occurrences of one defect."""
    return round(count * weight, 2)


def calculate_category_total(
    defects: list[DefectDefinition],
    counts: dict[str, float],
    category: DefectCategory,
) -> float:
    """Sum of equivalents for one category; missing counts are zero."""
    total = sum(
        calculate_defect_equivalents(counts.get(d.name, 0), d.weight)
        for d in defects
        if d.category == category
    )
    return round(total, 2)


def calculate_total_defects(
    defects: list[DefectDefinition],
    counts: dict[str, float],
) -> float:
    primary = calculate_category_total(defects, counts, DefectCategory.PRIMARY)
    secondary = calculate_category_total(defects, counts, DefectCategory.SECONDARY)
    return round(primary + secondary, 2)


def evaluate_defect_counts(
    config: DefectConfiguration,
    counts: dict[str, float],
    thresholds: DefectThresholds | None = None,
) -> DefectEvaluation:
    """Compare counted defects with the thresholds.

    Pass rescaled ``thresholds`` when the physical sample differs from the
    template's declared size.
    """
    limits = thresholds or config.thresholds
    primary = calculate_category_total(config.defects, counts, DefectCategory.PRIMARY)
    secondary = calculate_category_total(config.defects, counts, DefectCategory.SECONDARY)
    total = round(primary + secondary, 2)

    errors: list[str] = []
    if limits.max_primary is not None and primary > limits.max_primary:
        errors.append(
            f"Primary defects ({primary:g}) exceed maximum allowed ({limits.max_primary:g})"
        )
    if limits.max_secondary is not None and secondary > limits.max_secondary:
        errors.append(
            f"Secondary defects ({secondary:g}) exceed maximum allowed ({limits.max_secondary:g})"
        )
    if limits.max_total is not None and total > limits.max_total:
        errors.append(
            f"Total defects ({total:g}) exceed maximum allowed ({limits.max_total:g})"
        )

    return DefectEvaluation(
        primary_total=primary,
        secondary_total=secondary,
        total=total,
        valid=not errors,
        errors=errors,
    )


def scale_defect_thresholds(
    thresholds: DefectThresholds,
    from_sample_size: float,
    to_sample_size: float,
) -> DefectThresholds:
    """Rescale thresholds proportionally to a different sample weight.

    Raises:
        ValueError: If either sample size is not positive.
    """
    if not from_sample_size > 0 or not to_sample_size > 0:
        msg = "Sample sizes must be greater than 0."
        raise ValueError(msg)
    ratio = to_sample_size / from_sample_size

    def _scale(value: float | None) -> float | None:
        return round(value * ratio, 2) if value is not None else None

    return DefectThresholds(
        max_primary=_scale(thresholds.max_primary),
        max_secondary=_scale(thresholds.max_secondary),
        max_total=_scale(thresholds.max_total),
    )


# ---------------------------------------------------------------------------
# Predefined templates
# ---------------------------------------------------------------------------


def _catalogue(
    primary: list[tuple[str, float, str | None]],
    secondary: list[tuple[str, float, str | None]],
) -> list[DefectDefinition]:
    defects = [
        DefectDefinition(
            name=name, category=DefectCategory.PRIMARY, weight=weight,
            display_order=i, description=desc,
        )
        for i, (name, weight, desc) in enumerate(primary)
    ]
    defects.extend(
        DefectDefinition(
            name=name, category=DefectCategory.SECONDARY, weight=weight,
            display_order=i, description=desc,
        )
        for i, (name, weight, desc) in enumerate(secondary)
    )
    return defects


BRAZIL_SCA_DEFECTS = DefectTemplate(
    id="brazil-sca-standard",
    name="Brazil SCA Standard",
    description="Standard Brazilian coffee defect classification per SCA guidelines",
    origin="Brazil",
    category=DefectTemplateCategory.ORIGIN,
    configuration=DefectConfiguration(
        defects=_catalogue(
            [
                ("Full Black", 1.0, "Completely black bean"),
                ("Full Sour", 1.0, "Completely sour bean"),
                ("Pod/Cherry", 1.0, "Dried cherry or pod"),
                ("Stone/Stick", 1.0, "Foreign material (stone, stick)"),
                ("Foreign Material", 1.0, "Other foreign matter"),
                ("Large Husk", 1.0, "Large pieces of parchment/husk"),
            ],
            [
                ("Severe Broca", 0.2, "Severely insect-damaged"),
                ("Minor Broca", 0.1, "Minor insect damage"),
                ("Broken", 0.2, "Broken or chipped beans"),
                ("Unripe/Immature", 0.2, "Underdeveloped beans"),
                ("Bad Formed", 0.2, "Malformed beans"),
                ("Shells", 0.34, "Shell beans"),
                ("Partial Husk", 0.5, "Partial parchment"),
                ("Partial Sour", 0.5, "Partially sour bean"),
                ("Partial Black", 0.5, "Partially black bean"),
            ],
        ),
        thresholds=DefectThresholds(max_primary=5, max_secondary=86, max_total=91),
        notes=(
            "Standard Brazilian defect classification for 300g sample. "
            "Adjust proportionally for different sample sizes."
        ),
    ),
    is_system=True,
)

COLOMBIA_STANDARD_DEFECTS = DefectTemplate(
    id="colombia-standard",
    name="Colombia Standard",
    description="Colombian coffee defect classification",
    origin="Colombia",
    category=DefectTemplateCategory.ORIGIN,
    configuration=DefectConfiguration(
        defects=_catalogue(
            [
                ("Full Black", 1.0, None),
                ("Full Sour", 1.0, None),
                ("Dried Cherry", 1.0, None),
                ("Foreign Matter", 1.0, None),
                ("Severe Insect Damage", 1.0, None),
            ],
            [
                ("Partial Black", 0.33, None),
                ("Partial Sour", 0.33, None),
                ("Parchment", 0.2, None),
                ("Floater", 0.2, None),
                ("Immature", 0.2, None),
                ("Withered", 0.2, None),
                ("Shell", 0.2, None),
                ("Broken/Chipped", 0.2, None),
                ("Hull/Husk", 0.2, None),
            ],
        ),
        thresholds=DefectThresholds(max_primary=8, max_secondary=46, max_total=54),
        notes="Colombian defect standards for 300g sample",
    ),
    is_system=True,
)

GUATEMALA_STANDARD_DEFECTS = DefectTemplate(
    id="guatemala-standard",
    name="Guatemala Standard",
    description="Guatemalan coffee defect classification",
    origin="Guatemala",
    category=DefectTemplateCategory.ORIGIN,
    configuration=DefectConfiguration(
        defects=_catalogue(
            [
                ("Full Black", 1.0, None),
                ("Full Sour", 1.0, None),
                ("Dried Cherry", 1.0, None),
                ("Fungus Damage", 1.0, None),
                ("Foreign Matter", 1.0, None),
                ("Severe Insect Damage", 1.0, None),
            ],
            [
                ("Partial Black", 0.5, None),
                ("Partial Sour", 0.5, None),
                ("Parchment", 0.25, None),
                ("Floater", 0.25, None),
                ("Immature/Unripe", 0.25, None),
                ("Withered", 0.25, None),
                ("Shell", 0.25, None),
                ("Broken/Chipped", 0.25, None),
                ("Hull/Husk", 0.25, None),
                ("Minor Insect Damage", 0.2, None),
            ],
        ),
        thresholds=DefectThresholds(max_primary=8, max_secondary=50, max_total=58),
        notes="Guatemalan defect standards for 300g sample",
    ),
    is_system=True,
)

SCA_STANDARD_DEFECTS = DefectTemplate(
    id="sca-standard",
    name="SCA Standard",
    description="Generic SCA (Specialty Coffee Association) defect classification",
    category=DefectTemplateCategory.ORIGIN,
    configuration=DefectConfiguration(
        defects=_catalogue(
            [
                ("Full Black", 1.0, None),
                ("Full Sour", 1.0, None),
                ("Dried Cherry/Pod", 1.0, None),
                ("Fungus Damaged", 1.0, None),
                ("Foreign Matter", 1.0, None),
                ("Severe Insect Damage", 1.0, None),
            ],
            [
                ("Partial Black", 0.33, None),
                ("Partial Sour", 0.33, None),
                ("Parchment", 0.2, None),
                ("Floater", 0.2, None),
                ("Immature/Unripe", 0.2, None),
                ("Withered", 0.2, None),
                ("Shell", 0.2, None),
                ("Broken/Chipped/Cut", 0.2, None),
                ("Hull/Husk", 0.2, None),
                ("Minor Insect Damage", 0.2, None),
            ],
        ),
        thresholds=DefectThresholds(max_primary=5, max_secondary=45, max_total=50),
        notes="Generic SCA defect classification for 300g sample",
    ),
    is_system=True,
)

PREDEFINED_DEFECT_TEMPLATES: tuple[DefectTemplate, ...] = (
    BRAZIL_SCA_DEFECTS,
    COLOMBIA_STANDARD_DEFECTS,
    GUATEMALA_STANDARD_DEFECTS,
    SCA_STANDARD_DEFECTS,
)


def get_defect_template(template_id: str) -> DefectTemplate:
    """Look up a predefined defect template.

    Raises:
        KeyError: If no template has that id.
    """
    for template in PREDEFINED_DEFECT_TEMPLATES:
        if template.id == template_id:
            return template
    msg = f"Defect template '{template_id}' not found."
    raise KeyError(msg)


def load_defect_template(template_id: str) -> DefectConfiguration:
    """Return a deep copy of a preset's configuration.

    Loading always replaces the caller's configuration wholesale.
    """
    template = get_defect_template(template_id)
    logger.info(
        "Loading defect template %s (%d defects)",
        template_id, len(template.configuration.defects),
    )
    return template.configuration.model_copy(deep=True)


def clone_defect_template(
    template: DefectTemplate,
    new_name: str,
    new_description: str | None = None,
) -> DefectTemplate:
    """Copy a defect template into an editable custom template."""
    return template.model_copy(
        update={
            "id": f"custom-{new_uuid7()}",
            "name": new_name,
            "description": new_description or template.description,
            "category": DefectTemplateCategory.CUSTOM,
            "is_system": False,
            "configuration": template.configuration.model_copy(deep=True),
        },
    )
