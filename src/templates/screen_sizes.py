"""Screen-size constraint model.

Per-sieve acceptance rules over a sample's size distribution (percent of
sample weight retained on each screen):

- minimum: at least X% on this screen
- maximum: at most X% on this screen
- range:   between min% and max%
- any:     tracked only, no constraint

A configuration is a set of constraints keyed by ``screen_size``. An empty set
is valid here; the template validator treats it as incomplete.

Deterministic -- no I/O.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult
from src.templates import ordering
from src.templates.config import TemplateValidationConfig

STANDARD_SCREEN_SIZES: tuple[str, ...] = (
    "Pan",
    "Peas 9",
    "Peas 10",
    "Peas 11",
    "Screen 12",
    "Screen 13",
    "Screen 14",
    "Screen 15",
    "Screen 16",
    "Screen 17",
    "Screen 18",
    "Screen 19",
    "Screen 20",
)


class ScreenConstraintType(StrEnum):
    """Kinds of screen-size acceptance rule."""

    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    RANGE = "range"
    ANY = "any"


class ScreenSizeConstraint(QualityEngineBase, frozen=True):
    """Acceptance rule for one sieve size."""

    screen_size: str
    constraint_type: ScreenConstraintType
    min_value: float | None = None
    max_value: float | None = None
    display_order: int = 0


class ScreenSizeRequirements(QualityEngineBase, frozen=True):
    """All screen-size constraints of a template."""

    constraints: list[ScreenSizeConstraint] = Field(default_factory=list)
    notes: str | None = None


class ScreenSizeViolation(QualityEngineBase, frozen=True):
    """One constraint a measured distribution failed."""

    screen_size: str
    constraint_type: ScreenConstraintType
    expected: str
    actual: float
    message: str


class ScreenSizeEvaluation(QualityEngineBase, frozen=True):
    """Outcome of checking a distribution against requirements."""

    is_valid: bool
    violations: list[ScreenSizeViolation] = Field(default_factory=list)


def _pct(value: float | None) -> str:
    return f"{value:g}%" if value is not None else "?%"


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


def get_constraint_display_text(constraint: ScreenSizeConstraint) -> str:
    """Short display string for a constraint, e.g. ``≥60%`` or ``40%-60%``."""
    ctype = constraint.constraint_type
    if ctype == ScreenConstraintType.MINIMUM:
        return f"≥{_pct(constraint.min_value)}"
    if ctype == ScreenConstraintType.MAXIMUM:
        return f"≤{_pct(constraint.max_value)}"
    if ctype == ScreenConstraintType.RANGE:
        return f"{_pct(constraint.min_value)}-{_pct(constraint.max_value)}"
    if ctype == ScreenConstraintType.ANY:
        return "Any amount"
    raise TypeError(f"Unsupported constraint type: {ctype!r}")


def get_constrained_screen_sizes(requirements: ScreenSizeRequirements) -> list[str]:
    """Screen sizes that carry a constraint, in display order."""
    return [
        c.screen_size
        for c in ordering.sort_by_display_order(requirements.constraints)
    ]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_screen_size_constraint(
    constraint: ScreenSizeConstraint,
    config: TemplateValidationConfig | None = None,
) -> ValidationResult:
    """Check the type-specific numeric invariants of one constraint."""
    cfg = config or TemplateValidationConfig()
    name = constraint.screen_size.strip()
    if not name:
        return ValidationResult.fail("Screen size name is required")

    def in_bounds(value: float) -> bool:
        return cfg.percentage_min <= value <= cfg.percentage_max

    bounds = f"between {cfg.percentage_min:g} and {cfg.percentage_max:g}"
    ctype = constraint.constraint_type
    lo, hi = constraint.min_value, constraint.max_value

    if ctype == ScreenConstraintType.MINIMUM:
        if lo is None:
            return ValidationResult.fail(f"{name}: minimum constraint requires min_value")
        if not in_bounds(lo):
            return ValidationResult.fail(f"{name}: min_value must be {bounds}")
    elif ctype == ScreenConstraintType.MAXIMUM:
        if hi is None:
            return ValidationResult.fail(f"{name}: maximum constraint requires max_value")
        if not in_bounds(hi):
            return ValidationResult.fail(f"{name}: max_value must be {bounds}")
    elif ctype == ScreenConstraintType.RANGE:
        if lo is None or hi is None:
            return ValidationResult.fail(
                f"{name}: range constraint requires both min_value and max_value"
            )
        if not in_bounds(lo) or not in_bounds(hi):
            return ValidationResult.fail(f"{name}: range values must be {bounds}")
        if not lo < hi:
            return ValidationResult.fail(
                f"{name}: range min_value must be less than max_value"
            )
    elif ctype == ScreenConstraintType.ANY:
        if lo is not None or hi is not None:
            return ValidationResult.fail(
                f"{name}: 'any' constraint cannot carry min_value or max_value"
            )
    else:
        raise TypeError(f"Unsupported constraint type: {ctype!r}")

    return ValidationResult.ok()


def validate_screen_size_requirements(
    requirements: ScreenSizeRequirements,
    config: TemplateValidationConfig | None = None,
) -> ValidationResult:
    """Check uniqueness of screen sizes and each constraint's invariants."""
    seen: set[str] = set()
    for constraint in requirements.constraints:
        key = constraint.screen_size.strip().lower()
        if key in seen:
            return ValidationResult.fail(
                f"Duplicate screen size constraint: {constraint.screen_size}"
            )
        seen.add(key)

    for constraint in requirements.constraints:
        result = validate_screen_size_constraint(constraint, config)
        if not result.valid:
            return result

    return ValidationResult.ok()


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


def add_constraint(
    requirements: ScreenSizeRequirements,
    constraint: ScreenSizeConstraint,
) -> ScreenSizeRequirements:
    """Append a constraint.

    Raises:
        ValueError: If the screen size is already constrained.
    """
    key = constraint.screen_size.strip().lower()
    if any(c.screen_size.strip().lower() == key for c in requirements.constraints):
        msg = f"Screen size '{constraint.screen_size}' already has a constraint."
        raise ValueError(msg)
    return requirements.model_copy(
        update={"constraints": ordering.append_item(requirements.constraints, constraint)}
    )


def remove_constraint(
    requirements: ScreenSizeRequirements,
    screen_size: str,
) -> ScreenSizeRequirements:
    """Drop the constraint for ``screen_size``, ignoring case (no-op if absent)."""
    key = screen_size.strip().lower()
    remaining = [c for c in requirements.constraints if c.screen_size.strip().lower() != key]
    return requirements.model_copy(update={"constraints": ordering.renumber(remaining)})


def move_constraint(
    requirements: ScreenSizeRequirements,
    index: int,
    direction: int,
) -> ScreenSizeRequirements:
    """Move a constraint one step up (-1) or down (+1)."""
    return requirements.model_copy(
        update={"constraints": ordering.move(requirements.constraints, index, direction)}
    )


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate_screen_size_distribution(
    distribution: dict[str, float],
    requirements: ScreenSizeRequirements,
) -> ScreenSizeEvaluation:
    """Check a measured distribution against the requirements.

    Screen sizes absent from ``distribution`` count as 0%.
    """
    violations: list[ScreenSizeViolation] = []

    for constraint in requirements.constraints:
        actual = distribution.get(constraint.screen_size, 0.0)
        lo, hi = constraint.min_value, constraint.max_value
        ctype = constraint.constraint_type
        message: str | None = None

        if ctype == ScreenConstraintType.MINIMUM:
            if lo is not None and actual < lo:
                message = (
                    f"{constraint.screen_size} must be at least {_pct(lo)}, "
                    f"but is {_pct(actual)}"
                )
        elif ctype == ScreenConstraintType.MAXIMUM:
            if hi is not None and actual > hi:
                message = (
                    f"{constraint.screen_size} must be at most {_pct(hi)}, "
                    f"but is {_pct(actual)}"
                )
        elif ctype == ScreenConstraintType.RANGE:
            if lo is not None and hi is not None and not lo <= actual <= hi:
                message = (
                    f"{constraint.screen_size} must be between {_pct(lo)} and "
                    f"{_pct(hi)}, but is {_pct(actual)}"
                )

        if message is not None:
            violations.append(ScreenSizeViolation(
                screen_size=constraint.screen_size,
                constraint_type=ctype,
                expected=get_constraint_display_text(constraint),
                actual=actual,
                message=message,
            ))

    return ScreenSizeEvaluation(is_valid=not violations, violations=violations)
