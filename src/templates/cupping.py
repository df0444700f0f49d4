"""Cupping attribute configuration.

Named sensory attributes, each bound to its own scale, optionally required
and optionally carrying a minimum-score rule. Regional cupping protocols are
shipped as immutable presets and loaded by wholesale replacement.
"""

from __future__ import annotations

import logging

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult
from src.templates.scales import (
    DEFAULT_TOLERANCE,
    NumericScale,
    Scale,
    ScoreValidationRule,
    WordingScale,
    create_wording_scale,
    format_validation_rule,
    is_valid_score,
    validate_scale,
)

logger = logging.getLogger(__name__)


class CuppingAttribute(QualityEngineBase, frozen=True):
    """One scored sensory attribute, e.g. ``Acidity`` on 6-10 by 0.25."""

    attribute: str
    scale: Scale
    is_required: bool = True
    validation_rule: ScoreValidationRule | None = None


class CuppingAttributeTemplate(QualityEngineBase, frozen=True):
    """A regional cupping protocol: reference data, never edited in place."""

    id: str
    name: str
    description: str
    attributes: tuple[CuppingAttribute, ...]


class CuppingEvaluation(QualityEngineBase, frozen=True):
    valid: bool
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


def add_attribute(
    attributes: list[CuppingAttribute],
    attribute: CuppingAttribute,
) -> list[CuppingAttribute]:
    """Append an attribute.

    Raises:
        ValueError: If an attribute with the same name already exists.
    """
    key = attribute.attribute.strip().lower()
    if any(a.attribute.strip().lower() == key for a in attributes):
        msg = f"Cupping attribute '{attribute.attribute}' already exists."
        raise ValueError(msg)
    return [*attributes, attribute]


def remove_attribute(attributes: list[CuppingAttribute], name: str) -> list[CuppingAttribute]:
    """Drop the attribute called ``name``, ignoring case (no-op if absent)."""
    key = name.strip().lower()
    return [a for a in attributes if a.attribute.strip().lower() != key]


def get_required_attributes(attributes: list[CuppingAttribute]) -> list[CuppingAttribute]:
    return [a for a in attributes if a.is_required]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_cupping_attribute(
    attribute: CuppingAttribute,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ValidationResult:
    """Check the name, the scale, and that the rule resolves on the scale.

    A numeric rule must be a reachable score; a wording rule must equal the
    value of one of the options.
    """
    name = attribute.attribute.strip()
    if not name:
        return ValidationResult.fail("Attribute name is required")

    result = validate_scale(attribute.scale)
    if not result.valid:
        return ValidationResult.fail(f'Attribute "{name}": {result.error}')

    rule = attribute.validation_rule
    if rule is None:
        return ValidationResult.ok()

    scale = attribute.scale
    if isinstance(scale, NumericScale):
        if not is_valid_score(rule.min_value, scale, tolerance):
            return ValidationResult.fail(
                f'Attribute "{name}": minimum score {rule.min_value:g} is not a '
                "valid value on its scale"
            )
    elif isinstance(scale, WordingScale):
        if not any(abs(o.value - rule.min_value) < tolerance for o in scale.options):
            return ValidationResult.fail(
                f'Attribute "{name}": minimum score {rule.min_value:g} does not '
                "match any wording option"
            )
    else:
        raise TypeError(f"Unsupported scale variant: {type(scale).__name__}")

    return ValidationResult.ok()


def validate_cupping_attributes(
    attributes: list[CuppingAttribute],
    tolerance: float = DEFAULT_TOLERANCE,
) -> ValidationResult:
    """Unique attribute names, then each attribute on its own."""
    names = [a.attribute.strip().lower() for a in attributes]
    if len(set(names)) != len(names):
        return ValidationResult.fail("Duplicate cupping attribute names are not allowed")
    for attribute in attributes:
        result = validate_cupping_attribute(attribute, tolerance)
        if not result.valid:
            return result
    return ValidationResult.ok()


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate_cupping_scores(
    attributes: list[CuppingAttribute],
    scores: dict[str, float],
    tolerance: float = DEFAULT_TOLERANCE,
) -> CuppingEvaluation:
    """Check a cupper's scores against the attributes.

    Reports missing required attributes, scores off the scale, and scores
    below an attribute's minimum.
    """
    errors: list[str] = []
    for attribute in attributes:
        score = scores.get(attribute.attribute)
        if score is None:
            if attribute.is_required:
                errors.append(f'Missing score for required attribute "{attribute.attribute}"')
            continue
        if not is_valid_score(score, attribute.scale, tolerance):
            errors.append(f'Score {score:g} is not valid for "{attribute.attribute}"')
            continue
        rule = attribute.validation_rule
        if rule is not None and score < rule.min_value - tolerance:
            errors.append(
                rule.validation_message
                or f'"{attribute.attribute}" scored {score:g}, requires '
                f"{format_validation_rule(rule, attribute.scale)}"
            )
    return CuppingEvaluation(valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Predefined protocols
# ---------------------------------------------------------------------------


def _numeric(*entries: tuple[str, float, float, float]) -> list[CuppingAttribute]:
    return [
        CuppingAttribute(attribute=name, scale=NumericScale(min=lo, max=hi, increment=step))
        for name, lo, hi, step in entries
    ]


_SEVEN_LEVEL = create_wording_scale([
    ("Outstanding", 7),
    ("Excellent", 6),
    ("Very Good", 5),
    ("Good", 4),
    ("Fair", 3),
    ("Below Average", 2),
    ("Poor", 1),
])

_BRAZIL_FLAVOR = create_wording_scale([
    ("Special", 10),
    ("S.Soft", 9),
    ("Soft", 8),
    ("Softish", 7),
    ("Hard", 6),
    ("Hardish", 5),
    ("Rioy", 4),
    ("Rioy/Rio", 3),
    ("Rio", 2),
    ("Strong Rio", 1),
])

SCA_CUPPING_TEMPLATE = CuppingAttributeTemplate(
    id="sca-standard",
    name="SCA Standard",
    description="Specialty Coffee Association cupping protocol",
    attributes=tuple(_numeric(
        ("Fragrance/Aroma", 6, 10, 0.25),
        ("Flavor", 6, 10, 0.25),
        ("Aftertaste", 6, 10, 0.25),
        ("Acidity", 6, 10, 0.25),
        ("Body", 6, 10, 0.25),
        ("Balance", 6, 10, 0.25),
        ("Uniformity", 0, 10, 2),
        ("Clean Cup", 0, 10, 2),
        ("Sweetness", 0, 10, 2),
        ("Overall", 6, 10, 0.25),
    )),
)

COE_CUPPING_TEMPLATE = CuppingAttributeTemplate(
    id="coe-standard",
    name="COE Standard",
    description="Cup of Excellence cupping protocol",
    attributes=tuple(_numeric(
        ("Clean Cup", 0, 8, 2),
        ("Sweetness", 0, 8, 2),
        ("Acidity", 0, 8, 0.25),
        ("Mouthfeel", 0, 8, 0.25),
        ("Flavor", 0, 8, 0.25),
        ("Aftertaste", 0, 8, 0.25),
        ("Balance", 0, 8, 0.25),
        ("Overall", 0, 8, 0.25),
    )),
)

BRAZIL_TRADITIONAL_CUPPING_TEMPLATE = CuppingAttributeTemplate(
    id="brazil-traditional",
    name="Brazil Traditional (Numeric)",
    description="Classic Brazilian coffee cupping with numeric scales",
    attributes=(
        CuppingAttribute(
            attribute="Bebida (Beverage)",
            scale=create_wording_scale([
                ("Strictly Soft", 10),
                ("Soft", 9),
                ("Softish", 8),
                ("Hard", 7),
                ("Rioy", 6),
                ("Rio", 5),
            ]),
        ),
        *_numeric(
            ("Fragrance/Aroma", 1, 7, 0.5),
            ("Flavor", 1, 7, 0.5),
            ("Acidity", 1, 7, 0.5),
            ("Body", 1, 7, 0.5),
            ("Balance", 1, 7, 0.5),
        ),
    ),
)

BRAZIL_WORDING_CUPPING_TEMPLATE = CuppingAttributeTemplate(
    id="brazil-wording",
    name="Brazil Wording",
    description=(
        "Brazilian coffee cupping with wording-based scales "
        "(7-level for attributes, 10-level for Flavor)"
    ),
    attributes=(
        CuppingAttribute(attribute="Fragrance/Aroma", scale=_SEVEN_LEVEL),
        CuppingAttribute(attribute="Flavor", scale=_BRAZIL_FLAVOR),
        CuppingAttribute(attribute="Aftertaste", scale=_SEVEN_LEVEL),
        CuppingAttribute(attribute="Acidity", scale=_SEVEN_LEVEL),
        CuppingAttribute(attribute="Body", scale=_SEVEN_LEVEL),
        CuppingAttribute(attribute="Balance", scale=_SEVEN_LEVEL),
        CuppingAttribute(attribute="Overall", scale=_SEVEN_LEVEL),
    ),
)

SIMPLE_5_POINT_CUPPING_TEMPLATE = CuppingAttributeTemplate(
    id="simple-5-point",
    name="Simple 5-Point",
    description="Basic 5-point scale for quick evaluations",
    attributes=tuple(_numeric(
        ("Aroma", 1, 5, 0.5),
        ("Flavor", 1, 5, 0.5),
        ("Acidity", 1, 5, 0.5),
        ("Body", 1, 5, 0.5),
        ("Overall", 1, 5, 0.5),
    )),
)

CUPPING_ATTRIBUTE_TEMPLATES: tuple[CuppingAttributeTemplate, ...] = (
    SCA_CUPPING_TEMPLATE,
    COE_CUPPING_TEMPLATE,
    BRAZIL_TRADITIONAL_CUPPING_TEMPLATE,
    BRAZIL_WORDING_CUPPING_TEMPLATE,
    SIMPLE_5_POINT_CUPPING_TEMPLATE,
)


def get_cupping_template(template_id: str) -> CuppingAttributeTemplate:
    """Raises KeyError for an unknown id."""
    for template in CUPPING_ATTRIBUTE_TEMPLATES:
        if template.id == template_id:
            return template
    msg = f"Cupping template '{template_id}' not found."
    raise KeyError(msg)


def load_cupping_template(template_id: str, required: bool = True) -> list[CuppingAttribute]:
    """Attribute list of a protocol, replacing whatever the caller holds.

    Every loaded attribute gets ``is_required=required`` and a private copy
    of its scale.
    """
    template = get_cupping_template(template_id)
    logger.info("Loading cupping template %s (%d attributes)", template_id, len(template.attributes))
    return [
        a.model_copy(update={"is_required": required}, deep=True)
        for a in template.attributes
    ]
