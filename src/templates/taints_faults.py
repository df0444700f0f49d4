"""Taint and fault configuration.

Taints (mild off-flavours) and faults (severe defects) are kept in two
independent ordered lists. Each definition embeds its own intensity scale.
Acceptance is governed by one rule set combining count caps, intensity caps,
and a zero-tolerance mode that supersedes everything else.

Deterministic -- no I/O.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pydantic import Field, TypeAdapter, ValidationError, model_validator

from src.models.common import QualityEngineBase, ValidationResult, new_uuid7
from src.templates import ordering
from src.templates.scales import (
    NumericScale,
    Scale,
    WordingScale,
    create_numeric_scale,
    is_valid_score,
    validate_scale,
)

logger = logging.getLogger(__name__)

_NUMERIC_RULE_FIELDS = (
    "max_taints",
    "max_faults",
    "max_combined",
    "max_taint_intensity",
    "max_fault_intensity",
)

_FLAG = TypeAdapter(bool)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TaintFaultCategory(StrEnum):
    TAINT = "taint"
    FAULT = "fault"


class TaintFaultDefinition(QualityEngineBase, frozen=True):
    """One catalogued off-flavour with its intensity scale."""

    id: str
    name: str
    category: TaintFaultCategory
    scale: Scale
    description: str | None = None
    display_order: int = 0


class TaintFaultValidationRules(QualityEngineBase, frozen=True):
    """Acceptance rules. Unset limits are unlimited.

    With ``zero_tolerance`` on, every numeric limit is dropped at
    construction: no taint or fault of any intensity is acceptable.
    """

    zero_tolerance: bool | None = None
    max_taints: int | None = None
    max_faults: int | None = None
    max_combined: int | None = None
    max_taint_intensity: float | None = None
    max_fault_intensity: float | None = None
    validation_message: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _clear_limits_under_zero_tolerance(cls, data: Any) -> Any:
        if not isinstance(data, dict) or data.get("zero_tolerance") is None:
            return data
        try:
            enabled = _FLAG.validate_python(data["zero_tolerance"])
        except ValidationError:
            # Left for field validation to report.
            return data
        if enabled:
            return {k: v for k, v in data.items() if k not in _NUMERIC_RULE_FIELDS}
        return data

    @property
    def has_active_rules(self) -> bool:
        return bool(self.zero_tolerance) or any(
            getattr(self, field) is not None for field in _NUMERIC_RULE_FIELDS
        )


class TaintFaultConfiguration(QualityEngineBase, frozen=True):
    """Taint and fault catalogues plus acceptance rules."""

    taints: list[TaintFaultDefinition] = Field(default_factory=list)
    faults: list[TaintFaultDefinition] = Field(default_factory=list)
    rules: TaintFaultValidationRules = Field(default_factory=TaintFaultValidationRules)
    notes: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.taints and not self.faults and not self.rules.has_active_rules


class TaintFaultTemplate(QualityEngineBase, frozen=True):
    id: str
    name: str
    description: str
    configuration: TaintFaultConfiguration


class TaintFaultStats(QualityEngineBase, frozen=True):
    total_definitions: int
    taint_count: int
    fault_count: int
    has_validation_rules: bool
    zero_tolerance: bool


class TaintFaultObservation(QualityEngineBase, frozen=True):
    """A taint or fault detected in a cup, with its scored intensity."""

    name: str
    category: TaintFaultCategory
    intensity: float


class TaintFaultEvaluation(QualityEngineBase, frozen=True):
    valid: bool
    taint_count: int
    fault_count: int
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


def _definition_id(category: TaintFaultCategory) -> str:
    return f"{category.value}_{new_uuid7().hex}"


def _default_intensity_scale() -> NumericScale:
    return create_numeric_scale(1, 5, 0.5)


def create_taint_definition(
    name: str,
    display_order: int = 0,
    scale: NumericScale | WordingScale | None = None,
) -> TaintFaultDefinition:
    """New taint; intensity defaults to 1-5 in steps of 0.5."""
    return TaintFaultDefinition(
        id=_definition_id(TaintFaultCategory.TAINT),
        name=name,
        category=TaintFaultCategory.TAINT,
        scale=scale or _default_intensity_scale(),
        display_order=display_order,
    )


def create_fault_definition(
    name: str,
    display_order: int = 0,
    scale: NumericScale | WordingScale | None = None,
) -> TaintFaultDefinition:
    """New fault; intensity defaults to 1-5 in steps of 0.5."""
    return TaintFaultDefinition(
        id=_definition_id(TaintFaultCategory.FAULT),
        name=name,
        category=TaintFaultCategory.FAULT,
        scale=scale or _default_intensity_scale(),
        display_order=display_order,
    )


def clone_taint_fault_definition(definition: TaintFaultDefinition) -> TaintFaultDefinition:
    """Copy a definition under a new id with a "(copy)" name suffix."""
    return definition.model_copy(
        update={
            "id": _definition_id(definition.category),
            "name": f"{definition.name} (copy)",
        },
        deep=True,
    )


def create_empty_taint_fault_configuration() -> TaintFaultConfiguration:
    return TaintFaultConfiguration()


def _list_field(category: TaintFaultCategory) -> str:
    return "taints" if category == TaintFaultCategory.TAINT else "faults"


def add_definition(
    config: TaintFaultConfiguration,
    definition: TaintFaultDefinition,
) -> TaintFaultConfiguration:
    """Append a definition to the list matching its category."""
    field = _list_field(definition.category)
    items = getattr(config, field)
    return config.model_copy(update={field: ordering.append_item(items, definition)})


def remove_definition(
    config: TaintFaultConfiguration,
    category: TaintFaultCategory,
    index: int,
) -> TaintFaultConfiguration:
    """Remove the definition at ``index`` of one list.

    Raises:
        IndexError: If ``index`` is out of range.
    """
    field = _list_field(category)
    return config.model_copy(
        update={field: ordering.remove_at(getattr(config, field), index)}
    )


def move_definition(
    config: TaintFaultConfiguration,
    category: TaintFaultCategory,
    index: int,
    direction: int,
) -> TaintFaultConfiguration:
    """Move a definition one step up (-1) or down (+1) within its list."""
    field = _list_field(category)
    return config.model_copy(
        update={field: ordering.move(getattr(config, field), index, direction)}
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def set_zero_tolerance(
    rules: TaintFaultValidationRules,
    enabled: bool,
) -> TaintFaultValidationRules:
    """Toggle zero tolerance.

    Turning it on keeps only an existing validation message. Turning it off
    returns an empty (unlimited) rule set; earlier limits are not restored.
    """
    if enabled:
        return TaintFaultValidationRules(
            zero_tolerance=True,
            validation_message=rules.validation_message,
        )
    return TaintFaultValidationRules()


def set_rules(
    config: TaintFaultConfiguration,
    rules: TaintFaultValidationRules,
) -> TaintFaultConfiguration:
    return config.model_copy(update={"rules": rules})


# ---------------------------------------------------------------------------
# Validation and statistics
# ---------------------------------------------------------------------------


def _validate_definitions(
    definitions: list[TaintFaultDefinition],
    category: TaintFaultCategory,
    label: str,
) -> ValidationResult:
    for definition in definitions:
        if definition.category != category:
            return ValidationResult.fail(
                f'{label} list contains "{definition.name}" of category '
                f"{definition.category.value}"
            )
    names = [d.name.strip().lower() for d in definitions]
    if any(not n for n in names):
        return ValidationResult.fail(f"{label} names cannot be empty")
    if len(set(names)) != len(names):
        return ValidationResult.fail(f"Duplicate {label.lower()} names found")
    for definition in definitions:
        result = validate_scale(definition.scale)
        if not result.valid:
            return ValidationResult.fail(f'{label} "{definition.name}": {result.error}')
    return ValidationResult.ok()


def validate_taint_fault_configuration(config: TaintFaultConfiguration) -> ValidationResult:
    """Check both catalogues and the rule limits.

    Names need only be unique within their own list; a taint and a fault may
    share a name.
    """
    for definitions, category, label in (
        (config.taints, TaintFaultCategory.TAINT, "Taint"),
        (config.faults, TaintFaultCategory.FAULT, "Fault"),
    ):
        result = _validate_definitions(definitions, category, label)
        if not result.valid:
            return result

    rules = config.rules
    if rules.zero_tolerance and any(
        getattr(rules, field) is not None for field in _NUMERIC_RULE_FIELDS
    ):
        return ValidationResult.fail("Zero tolerance cannot be combined with numeric limits")
    for field, label in (
        ("max_taints", "Max taints"),
        ("max_faults", "Max faults"),
        ("max_combined", "Max combined"),
    ):
        value = getattr(rules, field)
        if value is not None and not value >= 0:
            return ValidationResult.fail(f"{label} must be non-negative")
    for field, label in (
        ("max_taint_intensity", "Max taint intensity"),
        ("max_fault_intensity", "Max fault intensity"),
    ):
        value = getattr(rules, field)
        if value is not None and not value > 0:
            return ValidationResult.fail(f"{label} must be positive")

    return ValidationResult.ok()


def calculate_taint_fault_stats(config: TaintFaultConfiguration) -> TaintFaultStats:
    """Summary counts for listings; not used for grading."""
    return TaintFaultStats(
        total_definitions=len(config.taints) + len(config.faults),
        taint_count=len(config.taints),
        fault_count=len(config.faults),
        has_validation_rules=config.rules.has_active_rules,
        zero_tolerance=bool(config.rules.zero_tolerance),
    )


def evaluate_taint_fault_observations(
    config: TaintFaultConfiguration,
    observations: list[TaintFaultObservation],
) -> TaintFaultEvaluation:
    """Apply the rules to what a cupper recorded.

    Observations naming an uncatalogued taint/fault, or an intensity off the
    definition's scale, are reported as errors.
    """
    rules = config.rules
    catalogue = {
        (d.category, d.name.strip().lower()): d for d in (*config.taints, *config.faults)
    }
    errors: list[str] = []
    taints = [o for o in observations if o.category == TaintFaultCategory.TAINT]
    faults = [o for o in observations if o.category == TaintFaultCategory.FAULT]

    for observation in observations:
        definition = catalogue.get((observation.category, observation.name.strip().lower()))
        if definition is None:
            errors.append(f'Unknown {observation.category.value} "{observation.name}"')
        elif not is_valid_score(observation.intensity, definition.scale):
            errors.append(
                f'Intensity {observation.intensity:g} is not valid for "{observation.name}"'
            )

    if rules.zero_tolerance:
        if observations:
            errors.append(
                rules.validation_message or "Zero tolerance: no taints or faults acceptable"
            )
        return TaintFaultEvaluation(
            valid=not errors, taint_count=len(taints), fault_count=len(faults), errors=errors,
        )

    if rules.max_taints is not None and len(taints) > rules.max_taints:
        errors.append(f"Taint count ({len(taints)}) exceeds maximum ({rules.max_taints})")
    if rules.max_faults is not None and len(faults) > rules.max_faults:
        errors.append(f"Fault count ({len(faults)}) exceeds maximum ({rules.max_faults})")
    if rules.max_combined is not None and len(observations) > rules.max_combined:
        errors.append(
            f"Combined count ({len(observations)}) exceeds maximum ({rules.max_combined})"
        )
    if rules.max_taint_intensity is not None:
        errors.extend(
            f'Taint "{o.name}" intensity {o.intensity:g} exceeds maximum '
            f"{rules.max_taint_intensity:g}"
            for o in taints if o.intensity > rules.max_taint_intensity
        )
    if rules.max_fault_intensity is not None:
        errors.extend(
            f'Fault "{o.name}" intensity {o.intensity:g} exceeds maximum '
            f"{rules.max_fault_intensity:g}"
            for o in faults if o.intensity > rules.max_fault_intensity
        )

    return TaintFaultEvaluation(
        valid=not errors, taint_count=len(taints), fault_count=len(faults), errors=errors,
    )


# ---------------------------------------------------------------------------
# Predefined templates
# ---------------------------------------------------------------------------


def _definitions(
    category: TaintFaultCategory,
    names: tuple[str, ...],
    scale: NumericScale,
) -> list[TaintFaultDefinition]:
    return [
        TaintFaultDefinition(
            id=f"{category.value}-{index}",
            name=name,
            category=category,
            scale=scale,
            display_order=index,
        )
        for index, name in enumerate(names)
    ]


_INTENSITY_1_5 = NumericScale(min=1, max=5, increment=0.5)
_INTENSITY_1_3 = NumericScale(min=1, max=3, increment=0.5)
_INTENSITY_1_10 = NumericScale(min=1, max=10, increment=1)

SCA_STANDARD_TAINTS_FAULTS = TaintFaultTemplate(
    id="sca-standard",
    name="SCA Standard",
    description=(
        "Specialty Coffee Association standard taint and fault definitions "
        "with 1-5 intensity scale"
    ),
    configuration=TaintFaultConfiguration(
        taints=_definitions(
            TaintFaultCategory.TAINT,
            ("Fermented", "Earthy", "Phenolic", "Chemical", "Musty", "Woody"),
            _INTENSITY_1_5,
        ),
        faults=_definitions(
            TaintFaultCategory.FAULT,
            ("Rancid", "Moldy", "Sour", "Stinker"),
            _INTENSITY_1_5,
        ),
        rules=TaintFaultValidationRules(
            max_taints=2,
            max_faults=1,
            max_taint_intensity=3,
            validation_message="SCA standard: Max 2 taints (intensity ≤3), max 1 fault",
        ),
        notes="Standard SCA cupping protocol for specialty grade coffee",
    ),
)

SPECIALTY_GRADE_TAINTS_FAULTS = TaintFaultTemplate(
    id="specialty-grade",
    name="Specialty Grade",
    description="Strict requirements for specialty grade coffee with minimal tolerance",
    configuration=TaintFaultConfiguration(
        taints=_definitions(
            TaintFaultCategory.TAINT, ("Fermented", "Earthy", "Musty"), _INTENSITY_1_3,
        ),
        faults=_definitions(TaintFaultCategory.FAULT, ("Rancid", "Moldy"), _INTENSITY_1_3),
        rules=TaintFaultValidationRules(
            max_taints=1,
            max_faults=0,
            max_taint_intensity=2,
            validation_message="Specialty grade: Max 1 light taint (intensity ≤2), no faults",
        ),
        notes="High quality specialty coffee with strict taint/fault requirements",
    ),
)

COMMERCIAL_GRADE_TAINTS_FAULTS = TaintFaultTemplate(
    id="commercial-grade",
    name="Commercial Grade",
    description="Standard commercial coffee with moderate tolerance for defects",
    configuration=TaintFaultConfiguration(
        taints=_definitions(
            TaintFaultCategory.TAINT,
            ("Fermented", "Earthy", "Phenolic", "Woody", "Musty"),
            _INTENSITY_1_10,
        ),
        faults=_definitions(
            TaintFaultCategory.FAULT, ("Rancid", "Moldy", "Sour"), _INTENSITY_1_10,
        ),
        rules=TaintFaultValidationRules(
            max_combined=5,
            max_taint_intensity=7,
            max_fault_intensity=5,
            validation_message=(
                "Commercial grade: Max 5 combined defects, taint intensity ≤7, "
                "fault intensity ≤5"
            ),
        ),
        notes="Standard commercial coffee with moderate defect tolerance",
    ),
)

ZERO_TOLERANCE_TAINTS_FAULTS = TaintFaultTemplate(
    id="zero-tolerance",
    name="Zero Tolerance",
    description="Premium quality with no taints or faults acceptable",
    configuration=TaintFaultConfiguration(
        taints=_definitions(
            TaintFaultCategory.TAINT, ("Fermented", "Earthy", "Phenolic"), _INTENSITY_1_5,
        ),
        faults=_definitions(TaintFaultCategory.FAULT, ("Rancid", "Moldy"), _INTENSITY_1_5),
        rules=TaintFaultValidationRules(
            zero_tolerance=True,
            validation_message="Zero tolerance: No taints or faults acceptable",
        ),
        notes="Premium quality coffee with zero tolerance for any sensory defects",
    ),
)

BRAZIL_TRADITIONAL_TAINTS_FAULTS = TaintFaultTemplate(
    id="brazil-traditional",
    name="Brazil Traditional",
    description="Traditional Brazilian classification with specific taint/fault terminology",
    configuration=TaintFaultConfiguration(
        taints=_definitions(
            TaintFaultCategory.TAINT, ("Riado", "Rio", "Fermented", "Earthy"), _INTENSITY_1_5,
        ),
        faults=_definitions(
            TaintFaultCategory.FAULT, ("Hard Riado", "Phenol Rio", "Moldy"), _INTENSITY_1_5,
        ),
        rules=TaintFaultValidationRules(
            max_taints=2,
            max_faults=1,
            max_taint_intensity=4,
            validation_message="Brazil traditional: Max 2 taints (intensity ≤4), max 1 fault",
        ),
        notes="Traditional Brazilian coffee classification with country-specific terminology",
    ),
)

PREDEFINED_TAINT_FAULT_TEMPLATES: tuple[TaintFaultTemplate, ...] = (
    SCA_STANDARD_TAINTS_FAULTS,
    SPECIALTY_GRADE_TAINTS_FAULTS,
    COMMERCIAL_GRADE_TAINTS_FAULTS,
    ZERO_TOLERANCE_TAINTS_FAULTS,
    BRAZIL_TRADITIONAL_TAINTS_FAULTS,
)


def get_taint_fault_template(template_id: str) -> TaintFaultTemplate:
    """Raises KeyError for an unknown id."""
    for template in PREDEFINED_TAINT_FAULT_TEMPLATES:
        if template.id == template_id:
            return template
    msg = f"Taint/fault template '{template_id}' not found."
    raise KeyError(msg)


def load_taint_fault_template(template_id: str) -> TaintFaultConfiguration:
    """Fresh copy of a preset with new definition ids; replaces, never merges."""
    source = get_taint_fault_template(template_id).configuration
    logger.info(
        "Loading taint/fault template %s (%d taints, %d faults)",
        template_id, len(source.taints), len(source.faults),
    )
    return source.model_copy(update={
        "taints": [d.model_copy(update={"id": _definition_id(d.category)}) for d in source.taints],
        "faults": [d.model_copy(update={"id": _definition_id(d.category)}) for d in source.faults],
    })
