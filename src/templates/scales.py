"""Scale model -- the two interchangeable ways a quality attribute is measured.

A ``Scale`` is a closed tagged union discriminated by ``type``:

- ``NumericScale``: bounded range with a step increment (e.g. 6-10 by 0.25)
- ``WordingScale``: ordered named options with numeric equivalents

Scales are always embedded by value in the attribute or definition that owns
them. Every helper below handles both variants explicitly and raises
``TypeError`` for anything else; that is a programming error, not invalid
user input.

Deterministic -- no I/O.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult, new_uuid7

DEFAULT_TOLERANCE = 0.01


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class NumericScale(QualityEngineBase, frozen=True):
    """Bounded numeric range scored in whole increments from ``min``."""

    type: Literal["numeric"] = "numeric"
    min: float
    max: float
    increment: float


class WordingScaleOption(QualityEngineBase, frozen=True):
    """One named level of a wording scale."""

    label: str
    value: float
    display_order: int = 0


class WordingScale(QualityEngineBase, frozen=True):
    """Ordered list of named options, each with a numeric equivalent."""

    type: Literal["wording"] = "wording"
    options: list[WordingScaleOption] = Field(default_factory=list)


Scale = Annotated[NumericScale | WordingScale, Field(discriminator="type")]


class ScoreValidationRule(QualityEngineBase, frozen=True):
    """Minimum acceptable score for an attribute.

    On a wording scale ``min_value`` is the numeric equivalent of the lowest
    acceptable option, so the rule is resolved through the scale's ordering.
    """

    min_value: float
    validation_message: str | None = None


class ScaleTemplateCategory(StrEnum):
    """Provenance of a reusable scale."""

    STANDARD = "standard"
    REGIONAL = "regional"
    CUSTOM = "custom"


class ScaleTemplate(QualityEngineBase, frozen=True):
    """A named, reusable scale that can be applied to many attributes."""

    id: str
    name: str
    description: str
    scale: Scale
    category: ScaleTemplateCategory
    is_system: bool = False


def _unsupported(scale: object) -> TypeError:
    return TypeError(f"Unsupported scale variant: {type(scale).__name__}")


# ---------------------------------------------------------------------------
# Construction and validation
# ---------------------------------------------------------------------------


def create_numeric_scale(min: float, max: float, increment: float) -> NumericScale:  # noqa: A002
    """Build a numeric scale. Call ``validate_scale`` before trusting it."""
    return NumericScale(min=min, max=max, increment=increment)


def create_wording_scale(
    options: Iterable[Mapping[str, object] | tuple[str, float]],
) -> WordingScale:
    """Build a wording scale; display_order follows the given order.

    Options may be ``{"label": ..., "value": ...}`` mappings or
    ``(label, value)`` pairs.
    """
    built: list[WordingScaleOption] = []
    for index, option in enumerate(options):
        if isinstance(option, tuple):
            label, value = option
        else:
            label, value = option["label"], option["value"]
        built.append(
            WordingScaleOption(label=str(label), value=float(value), display_order=index)  # type: ignore[arg-type]
        )
    return WordingScale(options=built)


def validate_scale(scale: NumericScale | WordingScale) -> ValidationResult:
    """Check a scale's structural invariants.

    Numeric: ``min < max`` and ``increment > 0``.
    Wording: at least one option, no empty labels, labels unique
    (case-insensitive).
    """
    if isinstance(scale, NumericScale):
        if not scale.min < scale.max:
            return ValidationResult.fail("Minimum must be less than maximum")
        if not scale.increment > 0:
            return ValidationResult.fail("Increment must be greater than 0")
        return ValidationResult.ok()

    if isinstance(scale, WordingScale):
        if not scale.options:
            return ValidationResult.fail("At least one option is required")
        if any(not o.label.strip() for o in scale.options):
            return ValidationResult.fail("Option labels cannot be empty")
        labels = [o.label.strip().lower() for o in scale.options]
        if len(set(labels)) != len(labels):
            return ValidationResult.fail("Duplicate labels are not allowed")
        return ValidationResult.ok()

    raise _unsupported(scale)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_scale_min_value(scale: NumericScale | WordingScale) -> float:
    """Lowest score the scale can express."""
    if isinstance(scale, NumericScale):
        return scale.min
    if isinstance(scale, WordingScale):
        return min(o.value for o in scale.options)
    raise _unsupported(scale)


def get_scale_max_value(scale: NumericScale | WordingScale) -> float:
    """Highest score the scale can express."""
    if isinstance(scale, NumericScale):
        return scale.max
    if isinstance(scale, WordingScale):
        return max(o.value for o in scale.options)
    raise _unsupported(scale)


def get_scale_valid_values(scale: NumericScale | WordingScale) -> list[float]:
    """Every score the scale accepts.

    Numeric scales are enumerated ascending from ``min``; wording scales are
    returned highest value first.
    """
    if isinstance(scale, NumericScale):
        if not scale.increment > 0 or not scale.min <= scale.max:
            return []
        steps = math.floor((scale.max - scale.min) / scale.increment + 1e-9)
        return [round(scale.min + i * scale.increment, 6) for i in range(steps + 1)]
    if isinstance(scale, WordingScale):
        return sorted((o.value for o in scale.options), reverse=True)
    raise _unsupported(scale)


def is_valid_score(
    score: float,
    scale: NumericScale | WordingScale,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """True if ``score`` is reachable on the scale within ``tolerance``."""
    if isinstance(scale, NumericScale):
        if not scale.increment > 0:
            return False
        if score < scale.min - tolerance or score > scale.max + tolerance:
            return False
        steps = (score - scale.min) / scale.increment
        return abs(steps - round(steps)) * scale.increment < tolerance
    if isinstance(scale, WordingScale):
        return any(abs(o.value - score) < tolerance for o in scale.options)
    raise _unsupported(scale)


def get_score_label(
    score: float,
    scale: NumericScale | WordingScale,
    tolerance: float = DEFAULT_TOLERANCE,
) -> str | None:
    """Human label for a score; ``None`` if a wording scale has no match."""
    if isinstance(scale, NumericScale):
        return f"{score:g}"
    if isinstance(scale, WordingScale):
        for option in sorted(scale.options, key=lambda o: o.display_order):
            if abs(option.value - score) < tolerance:
                return option.label
        return None
    raise _unsupported(scale)


def get_label_value(label: str, scale: WordingScale) -> float | None:
    """Numeric equivalent of a wording label (case-insensitive)."""
    wanted = label.strip().lower()
    for option in scale.options:
        if option.label.strip().lower() == wanted:
            return option.value
    return None


def format_number(value: float) -> str:
    """Render a score with at least one decimal place (7 -> '7.0', 7.25 -> '7.25')."""
    if float(value).is_integer():
        return f"{value:.1f}"
    return f"{value:g}"


def format_validation_rule(
    rule: ScoreValidationRule,
    scale: NumericScale | WordingScale,
) -> str:
    """Render a minimum-score rule as a short constraint string.

    Numeric scales render the value (``"≥7.0"``). Wording scales render the
    label the value resolves to (``"≥Good"``) and fall back to the numeric
    form when no option carries that value.
    """
    if isinstance(scale, NumericScale):
        return f"≥{format_number(rule.min_value)}"
    if isinstance(scale, WordingScale):
        label = get_score_label(rule.min_value, scale)
        if label is None:
            return f"≥{format_number(rule.min_value)}"
        return f"≥{label}"
    raise _unsupported(scale)


def describe_scale(scale: NumericScale | WordingScale) -> str:
    """One-line summary used in listings and CLI output."""
    if isinstance(scale, NumericScale):
        return (
            f"Numeric {format_number(scale.min)}-{format_number(scale.max)} "
            f"(step {scale.increment:g})"
        )
    if isinstance(scale, WordingScale):
        return f"Wording ({len(scale.options)} levels)"
    raise _unsupported(scale)


# ---------------------------------------------------------------------------
# Predefined scale templates
# ---------------------------------------------------------------------------

SCA_NUMERIC_SCALE = ScaleTemplate(
    id="sca-numeric-10",
    name="SCA Numeric (1-10)",
    description="Standard SCA 10-point numeric scale with 0.25 increments",
    scale=NumericScale(min=1, max=10, increment=0.25),
    category=ScaleTemplateCategory.STANDARD,
    is_system=True,
)

SCA_WORDING_7_LEVEL = ScaleTemplate(
    id="sca-wording-7",
    name="SCA 7-Level Wording",
    description="7-level wording scale used for Fragrance/Aroma, Acidity, Body, Sweetness",
    scale=create_wording_scale([
        ("Outstanding", 10),
        ("Special", 9),
        ("Good", 7),
        ("Notable", 6),
        ("Medium", 5),
        ("Not Notable", 3),
        ("Poor/Flat", 1),
    ]),
    category=ScaleTemplateCategory.STANDARD,
    is_system=True,
)

BRAZIL_FLAVOR_10_LEVEL = ScaleTemplate(
    id="brazil-flavor-10",
    name="Brazil Flavor (10-Level)",
    description="Traditional Brazilian 10-level flavor classification",
    scale=create_wording_scale([
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
    ]),
    category=ScaleTemplateCategory.REGIONAL,
    is_system=True,
)

COE_NUMERIC_SCALE = ScaleTemplate(
    id="coe-numeric-5",
    name="COE Numeric (1-5)",
    description="Cup of Excellence 5-point numeric scale",
    scale=NumericScale(min=1, max=5, increment=0.25),
    category=ScaleTemplateCategory.STANDARD,
    is_system=True,
)

NUMERIC_7_SCALE = ScaleTemplate(
    id="numeric-7",
    name="Numeric (1-7)",
    description="7-point numeric scale with 0.25 increments",
    scale=NumericScale(min=1, max=7, increment=0.25),
    category=ScaleTemplateCategory.STANDARD,
    is_system=True,
)

NUMERIC_5_SCALE = ScaleTemplate(
    id="numeric-5",
    name="Numeric (1-5)",
    description="5-point numeric scale with 0.25 increments",
    scale=NumericScale(min=1, max=5, increment=0.25),
    category=ScaleTemplateCategory.STANDARD,
    is_system=True,
)

PREDEFINED_SCALE_TEMPLATES: tuple[ScaleTemplate, ...] = (
    SCA_NUMERIC_SCALE,
    SCA_WORDING_7_LEVEL,
    BRAZIL_FLAVOR_10_LEVEL,
    COE_NUMERIC_SCALE,
    NUMERIC_7_SCALE,
    NUMERIC_5_SCALE,
)


def get_scale_template(template_id: str) -> ScaleTemplate:
    """Look up a predefined scale template.

    Raises:
        KeyError: If no template has that id.
    """
    for template in PREDEFINED_SCALE_TEMPLATES:
        if template.id == template_id:
            return template
    msg = f"Scale template '{template_id}' not found."
    raise KeyError(msg)


def clone_scale_template(
    template: ScaleTemplate,
    new_name: str,
    new_description: str | None = None,
) -> ScaleTemplate:
    """Copy a scale template into a user-owned custom template."""
    return ScaleTemplate(
        id=f"custom-{new_uuid7()}",
        name=new_name,
        description=new_description or template.description,
        scale=template.scale.model_copy(deep=True),
        category=ScaleTemplateCategory.CUSTOM,
        is_system=False,
    )
