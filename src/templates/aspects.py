"""Visual aspect configuration (green and roast bean appearance).

An aspect configuration is an ordered list of wordings, each with a numeric
equivalent on a 1-10 scale, plus an optional minimum-acceptable threshold
that must point at one of those wordings.

Mutation helpers keep two invariants after every call:

* ``display_order`` equals list position (0..n-1)
* ``validation.min_acceptable_value`` is either unset or the value of an
  existing wording; removing the referenced wording clears ``validation``

Deterministic -- no I/O.
"""

from __future__ import annotations

import logging

from pydantic import Field

from src.models.common import QualityEngineBase, ValidationResult, new_uuid7
from src.templates import ordering
from src.templates.config import TemplateValidationConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class AspectWording(QualityEngineBase, frozen=True):
    """One appearance level, e.g. ``Blue-Green`` worth 9."""

    id: str = Field(default_factory=lambda: str(new_uuid7()))
    label: str
    value: float
    display_order: int = 0
    description: str | None = None


class AspectValidation(QualityEngineBase, frozen=True):
    """Minimum acceptable appearance level."""

    min_acceptable_value: float
    validation_message: str | None = None


class AspectConfiguration(QualityEngineBase, frozen=True):
    """Ordered appearance scale with an optional acceptance threshold."""

    wordings: list[AspectWording] = Field(default_factory=list)
    validation: AspectValidation | None = None
    notes: str | None = None

    @property
    def is_empty(self) -> bool:
        """Never configured: no wordings and no threshold."""
        return not self.wordings and self.validation is None


class AspectConfigTemplate(QualityEngineBase, frozen=True):
    """A predefined aspect configuration."""

    id: str
    name: str
    description: str
    configuration: AspectConfiguration


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def create_aspect_wording(
    label: str,
    value: float,
    order: int = 0,
    description: str | None = None,
) -> AspectWording:
    """Build a wording with a fresh id."""
    return AspectWording(
        label=label,
        value=value,
        display_order=order,
        description=description,
    )


def create_empty_aspect_configuration() -> AspectConfiguration:
    return AspectConfiguration()


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


def add_wording(
    config: AspectConfiguration,
    label: str,
    value: float,
    description: str | None = None,
) -> AspectConfiguration:
    """Append a wording at the end of the scale."""
    wording = create_aspect_wording(label, value, len(config.wordings), description)
    return config.model_copy(
        update={"wordings": ordering.append_item(config.wordings, wording)}
    )


def update_wording(
    config: AspectConfiguration,
    wording_id: str,
    *,
    label: str | None = None,
    value: float | None = None,
    description: str | None = None,
) -> AspectConfiguration:
    """Edit a wording in place.

    Changing the value of the wording the threshold points at moves the
    threshold with it.

    Raises:
        KeyError: If no wording has that id.
    """
    index = _index_of(config, wording_id)
    old = config.wordings[index]
    changes: dict[str, object] = {}
    if label is not None:
        changes["label"] = label
    if value is not None:
        changes["value"] = value
    if description is not None:
        changes["description"] = description

    wordings = list(config.wordings)
    wordings[index] = old.model_copy(update=changes)

    validation = config.validation
    if (
        validation is not None
        and value is not None
        and validation.min_acceptable_value == old.value
        and not any(w.value == old.value for w in wordings)
    ):
        validation = validation.model_copy(update={"min_acceptable_value": value})

    return config.model_copy(update={"wordings": wordings, "validation": validation})


def remove_wording(config: AspectConfiguration, wording_id: str) -> AspectConfiguration:
    """Remove a wording, renumber the rest, and drop a dangling threshold.

    Raises:
        KeyError: If no wording has that id.
    """
    index = _index_of(config, wording_id)
    removed = config.wordings[index]
    wordings = ordering.remove_at(config.wordings, index)

    validation = config.validation
    if validation is not None and validation.min_acceptable_value == removed.value:
        logger.debug(
            "Clearing aspect threshold %s: wording '%s' removed",
            validation.min_acceptable_value, removed.label,
        )
        validation = None

    return config.model_copy(update={"wordings": wordings, "validation": validation})


def swap_wordings(config: AspectConfiguration, first: int, second: int) -> AspectConfiguration:
    """Swap two wordings' positions and display_order together."""
    return config.model_copy(
        update={"wordings": ordering.swap(config.wordings, first, second)}
    )


def move_wording(config: AspectConfiguration, index: int, direction: int) -> AspectConfiguration:
    """Move a wording one step up (-1) or down (+1)."""
    return config.model_copy(
        update={"wordings": ordering.move(config.wordings, index, direction)}
    )


def set_min_acceptable_value(
    config: AspectConfiguration,
    value: float | None,
    validation_message: str | None = None,
) -> AspectConfiguration:
    """Set or clear the acceptance threshold.

    Raises:
        ValueError: If ``value`` is not the value of an existing wording.
    """
    if value is None:
        return config.model_copy(update={"validation": None})
    if not any(w.value == value for w in config.wordings):
        msg = f"Minimum acceptable value {value:g} does not match any wording."
        raise ValueError(msg)
    return config.model_copy(update={
        "validation": AspectValidation(
            min_acceptable_value=value,
            validation_message=validation_message,
        ),
    })


def _index_of(config: AspectConfiguration, wording_id: str) -> int:
    for index, wording in enumerate(config.wordings):
        if wording.id == wording_id:
            return index
    msg = f"Aspect wording '{wording_id}' not found."
    raise KeyError(msg)


# ---------------------------------------------------------------------------
# Validation and evaluation
# ---------------------------------------------------------------------------


def validate_aspect_configuration(
    config: AspectConfiguration,
    config_limits: TemplateValidationConfig | None = None,
) -> ValidationResult:
    """Check labels, value bounds, and the threshold reference.

    An empty wording list is structurally fine on its own; the template
    validator skips never-configured aspects.
    """
    limits = config_limits or TemplateValidationConfig()

    if any(not w.label.strip() for w in config.wordings):
        return ValidationResult.fail("Wording labels cannot be empty")

    labels = [w.label.strip().lower() for w in config.wordings]
    if len(set(labels)) != len(labels):
        return ValidationResult.fail("Duplicate wording labels are not allowed")

    values = [w.value for w in config.wordings]
    if len(set(values)) != len(values):
        return ValidationResult.fail("Duplicate values are not allowed")

    for wording in config.wordings:
        if not limits.aspect_value_min <= wording.value <= limits.aspect_value_max:
            return ValidationResult.fail(
                f"Wording '{wording.label}' value must be between "
                f"{limits.aspect_value_min:g} and {limits.aspect_value_max:g}"
            )

    if config.validation is not None and config.validation.min_acceptable_value not in values:
        return ValidationResult.fail(
            "Minimum acceptable value must match one of the wording values"
        )

    return ValidationResult.ok()


def evaluate_aspect(config: AspectConfiguration, value: float) -> bool:
    """True if an observed aspect value meets the threshold (or none is set)."""
    if config.validation is None:
        return True
    return value >= config.validation.min_acceptable_value


def get_wording_for_value(config: AspectConfiguration, value: float) -> AspectWording | None:
    for wording in config.wordings:
        if wording.value == value:
            return wording
    return None


# ---------------------------------------------------------------------------
# Predefined templates
# ---------------------------------------------------------------------------


def _wordings(*entries: tuple[str, float, str]) -> list[AspectWording]:
    return [
        AspectWording(id=f"preset-{i}", label=label, value=value, display_order=i, description=desc)
        for i, (label, value, desc) in enumerate(entries)
    ]


GREEN_ASPECT_STANDARD = AspectConfigTemplate(
    id="green-standard",
    name="Standard Green Aspect",
    description="Industry standard green bean appearance scale",
    configuration=AspectConfiguration(
        wordings=_wordings(
            ("Uneven", 1, "Inconsistent color and appearance"),
            ("Brownish", 2, "Brown-tinted beans"),
            ("Yellowish", 3, "Yellow-tinted beans"),
            ("Yellow", 4, "Yellow colored beans"),
            ("Yellow-Green", 5, "Yellow-green transition"),
            ("Greenish", 6, "Light green beans"),
            ("Green", 7, "Green colored beans"),
            ("Bluish-Green", 8, "Blue-green tinted beans"),
            ("Blue-Green", 9, "Premium blue-green beans"),
        ),
        notes="Higher quality beans typically show greener to blue-green colors",
    ),
)

GREEN_ASPECT_SIMPLIFIED = AspectConfigTemplate(
    id="green-simplified",
    name="Simplified Green Aspect",
    description="Basic 3-level green bean appearance scale",
    configuration=AspectConfiguration(
        wordings=_wordings(
            ("Poor", 1, "Low quality appearance"),
            ("Good", 5, "Acceptable appearance"),
            ("Excellent", 9, "Premium appearance"),
        ),
        notes="Simple classification for quick assessment",
    ),
)

ROAST_ASPECT_STANDARD = AspectConfigTemplate(
    id="roast-standard",
    name="Standard Roast Aspect",
    description="Industry standard roasted bean appearance scale",
    configuration=AspectConfiguration(
        wordings=_wordings(
            ("Uneven", 1, "Inconsistent roast, mixed colors"),
            ("Good", 4, "Acceptable roast appearance"),
            ("Good to Fine", 7, "Above average appearance"),
            ("Fine", 10, "Excellent roast appearance"),
        ),
        notes="Even coloration indicates consistent roasting. Equal quartile scale (1, 4, 7, 10).",
    ),
)

ROAST_ASPECT_DETAILED = AspectConfigTemplate(
    id="roast-detailed",
    name="Detailed Roast Aspect",
    description="Detailed roasted bean appearance scale with more granularity",
    configuration=AspectConfiguration(
        wordings=_wordings(
            ("Very Uneven", 1, "Highly inconsistent appearance"),
            ("Uneven", 2.5, "Inconsistent roast"),
            ("Fair", 4, "Somewhat even"),
            ("Good", 5.5, "Acceptable appearance"),
            ("Good to Fine", 7, "Above average"),
            ("Fine", 8.5, "Very good appearance"),
            ("Excellent", 10, "Outstanding appearance"),
        ),
        notes="More granular scale for detailed quality grading (1-10 range with 1.5 point increments)",
    ),
)

GREEN_ASPECT_TEMPLATES: tuple[AspectConfigTemplate, ...] = (
    GREEN_ASPECT_STANDARD,
    GREEN_ASPECT_SIMPLIFIED,
)

ROAST_ASPECT_TEMPLATES: tuple[AspectConfigTemplate, ...] = (
    ROAST_ASPECT_STANDARD,
    ROAST_ASPECT_DETAILED,
)


def load_aspect_template(template_id: str) -> AspectConfiguration:
    """Return a fresh copy of a predefined aspect configuration.

    The result replaces whatever configuration the caller holds; it is never
    merged. Wordings get new ids so two loads never share identities.

    Raises:
        KeyError: If no green or roast template has that id.
    """
    for template in (*GREEN_ASPECT_TEMPLATES, *ROAST_ASPECT_TEMPLATES):
        if template.id == template_id:
            logger.info("Loading aspect template %s", template_id)
            source = template.configuration
            return source.model_copy(update={
                "wordings": [
                    w.model_copy(update={"id": str(new_uuid7())}) for w in source.wordings
                ],
            })
    msg = f"Aspect template '{template_id}' not found."
    raise KeyError(msg)
