"""Template validator -- the single entry point before a template is accepted.

Runs every component validator over a ``QualityTemplate``. Within a
component the first failure wins; across components failures are
aggregated, so one pass reports every failing area. A sub-configuration
that was never filled in is valid by absence.

Deterministic -- no I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from src.models.common import QualityEngineBase, TemplateValidationResult, ValidationResult
from src.templates.aspects import validate_aspect_configuration
from src.templates.config import TemplateValidationConfig
from src.templates.cupping import validate_cupping_attributes
from src.templates.defects import check_threshold_consistency, validate_defect_configuration
from src.templates.micro_regions import (
    get_total_percentage_constraints,
    validate_micro_region_configuration,
)
from src.templates.screen_sizes import validate_screen_size_requirements
from src.templates.sharing import sharing_scope_from_flags
from src.templates.taints_faults import validate_taint_fault_configuration
from src.templates.template import QualityTemplate, TemplateParameters

logger = logging.getLogger(__name__)

_SHARING_FLAGS = ("is_global", "laboratory_ids")


class _SharingFlags(QualityEngineBase, frozen=True):
    """Legacy sharing flags as they arrive in a raw payload."""

    is_global: bool | None = None
    laboratory_ids: list[UUID] | None = None


class TemplateValidator:
    """Checks a whole template for internal consistency.

    Each ``_check_*`` method returns at most one error for its component.
    Soft inconsistencies (a defect ``max_total`` stricter than a category
    limit, micro-region minimums that cannot all be met) become warnings
    and never affect ``valid``.
    """

    def __init__(self, config: TemplateValidationConfig | None = None) -> None:
        self._config = config or TemplateValidationConfig()

    def validate(self, template: QualityTemplate) -> TemplateValidationResult:
        """Validate every component and aggregate the results.

        Steps:
        1. Identity: non-empty name and origin.
        2. Sample sizes, moisture bounds, quakers.
        3. Screen sizes: at least one constraint, each valid.
        4. Cupping: at least one attribute, each valid.
        5. Optional sub-configurations, skipped when never configured.
        6. Soft consistency warnings.
        """
        params = template.parameters
        checks: list[tuple[str, Callable[[], str | None]]] = [
            ("name", lambda: self._check_name(template)),
            ("origin", lambda: self._check_origin(template)),
            ("sample_size", lambda: self._check_sample_size(params)),
            ("moisture", lambda: self._check_moisture(params)),
            ("roast_sample_size", lambda: self._check_roast_sample_size(params)),
            ("quakers", lambda: self._check_quakers(params)),
            ("screen_sizes", lambda: self._check_screen_sizes(params)),
            ("cupping", lambda: self._check_cupping(params)),
            ("green_aspect", lambda: self._check_green_aspect(params)),
            ("roast_aspect", lambda: self._check_roast_aspect(params)),
            ("defects", lambda: self._check_defects(params)),
            ("taints_faults", lambda: self._check_taints_faults(params)),
            ("micro_regions", lambda: self._check_micro_regions(params)),
        ]

        errors: list[str] = []
        for component, check in checks:
            error = check()
            if error is not None:
                logger.debug("Template %s failed %s: %s", template.template_id, component, error)
                errors.append(error)

        warnings = self._collect_warnings(params)
        result = TemplateValidationResult(valid=not errors, errors=errors, warnings=warnings)
        logger.debug(
            "Validated template %s v%d: valid=%s errors=%d warnings=%d",
            template.template_id, template.version, result.valid,
            len(errors), len(warnings),
        )
        return result

    # ---------------------------------------------------------------
    # Identity and scalar parameters
    # ---------------------------------------------------------------

    def _check_name(self, template: QualityTemplate) -> str | None:
        if not template.name.en.strip():
            return "Template name is required"
        return None

    def _check_origin(self, template: QualityTemplate) -> str | None:
        if not template.origin.strip():
            return "Origin is required"
        return None

    def _check_sample_size(self, params: TemplateParameters) -> str | None:
        if params.sample_size_grams is not None and not params.sample_size_grams > 0:
            return "Sample size must be greater than 0"
        return None

    def _check_roast_sample_size(self, params: TemplateParameters) -> str | None:
        if params.roast_sample_size_grams is not None and not params.roast_sample_size_grams > 0:
            return "Roast sample size must be greater than 0"
        return None

    def _check_quakers(self, params: TemplateParameters) -> str | None:
        if params.max_quakers is not None and not params.max_quakers >= 0:
            return "Max quakers cannot be negative"
        return None

    def _check_moisture(self, params: TemplateParameters) -> str | None:
        lo_bound = self._config.moisture_min_bound
        hi_bound = self._config.moisture_max_bound
        for value, label in ((params.moisture_min, "minimum"), (params.moisture_max, "maximum")):
            if value is not None and not lo_bound <= value <= hi_bound:
                return f"Moisture {label} must be between {lo_bound:g} and {hi_bound:g}"
        if (
            params.moisture_min is not None
            and params.moisture_max is not None
            and params.moisture_min >= params.moisture_max
        ):
            return "Moisture minimum must be less than maximum"
        return None

    # ---------------------------------------------------------------
    # Required components
    # ---------------------------------------------------------------

    def _check_screen_sizes(self, params: TemplateParameters) -> str | None:
        requirements = params.screen_size_requirements
        if not requirements.constraints:
            return "At least one screen size constraint is required"
        return _prefixed("Screen sizes", validate_screen_size_requirements(requirements, self._config))

    def _check_cupping(self, params: TemplateParameters) -> str | None:
        if not params.cupping_attributes:
            return "At least one cupping attribute is required"
        return _prefixed(
            "Cupping",
            validate_cupping_attributes(params.cupping_attributes, self._config.score_tolerance),
        )

    # ---------------------------------------------------------------
    # Optional components
    # ---------------------------------------------------------------

    def _check_green_aspect(self, params: TemplateParameters) -> str | None:
        config = params.green_aspect_configuration
        if config is None or config.is_empty:
            return None
        return _prefixed("Green aspect", validate_aspect_configuration(config, self._config))

    def _check_roast_aspect(self, params: TemplateParameters) -> str | None:
        config = params.roast_aspect_configuration
        if config is None or config.is_empty:
            return None
        return _prefixed("Roast aspect", validate_aspect_configuration(config, self._config))

    def _check_defects(self, params: TemplateParameters) -> str | None:
        config = params.defect_configuration
        if config is None or config.is_empty:
            return None
        return _prefixed("Defects", validate_defect_configuration(config, self._config))

    def _check_taints_faults(self, params: TemplateParameters) -> str | None:
        config = params.taint_fault_configuration
        if config is None or config.is_empty:
            return None
        return _prefixed("Taints/faults", validate_taint_fault_configuration(config))

    def _check_micro_regions(self, params: TemplateParameters) -> str | None:
        config = params.micro_region_configuration
        if config is None or config.is_empty:
            return None
        return _prefixed("Micro-regions", validate_micro_region_configuration(config, self._config))

    # ---------------------------------------------------------------
    # Warnings
    # ---------------------------------------------------------------

    def _collect_warnings(self, params: TemplateParameters) -> list[str]:
        warnings: list[str] = []
        if params.defect_configuration is not None:
            warnings.extend(
                f"Defects: {w}"
                for w in check_threshold_consistency(params.defect_configuration.thresholds)
            )
        if params.micro_region_configuration is not None:
            for requirement in params.micro_region_configuration.requirements:
                totals = get_total_percentage_constraints(requirement)
                if totals.min > self._config.percentage_max:
                    warnings.append(
                        f'Micro-regions: minimum percentages for "{requirement.origin}" '
                        f"add up to {totals.min:g}%"
                    )
        return warnings


def _prefixed(component: str, result: ValidationResult) -> str | None:
    if result.valid:
        return None
    return f"{component}: {result.error}"


def validate_template(
    template: QualityTemplate,
    config: TemplateValidationConfig | None = None,
) -> TemplateValidationResult:
    """Validate a parsed template with a default-configured validator."""
    return TemplateValidator(config).validate(template)


def validate_template_payload(
    payload: Mapping[str, Any],
    config: TemplateValidationConfig | None = None,
) -> TemplateValidationResult:
    """Validate a raw template payload, e.g. decoded request JSON.

    Accepts the sharing scope either as a ``sharing`` object or as the flag
    pair ``is_global`` / ``laboratory_ids``. A payload that is global and
    assigned to laboratories at once is rejected. Type errors are returned
    as messages instead of raising.
    """
    data = dict(payload)
    errors: list[str] = []

    if any(flag in data for flag in _SHARING_FLAGS):
        raw_flags = {flag: data.pop(flag) for flag in _SHARING_FLAGS if flag in data}
        if "sharing" in data:
            errors.append("Provide either sharing or is_global/laboratory_ids, not both")
        else:
            try:
                flags = _SharingFlags.model_validate(raw_flags)
            except ValidationError as exc:
                errors.extend(_format_errors(exc))
            else:
                is_global = bool(flags.is_global)
                laboratory_ids = flags.laboratory_ids or []
                if is_global and laboratory_ids:
                    errors.append(
                        "A global template cannot also be assigned to specific laboratories"
                    )
                else:
                    scope = sharing_scope_from_flags(is_global, laboratory_ids)
                    data["sharing"] = scope.model_dump(mode="json")

    if errors:
        # Parse anyway so the caller sees every problem in one pass.
        data.pop("sharing", None)

    try:
        template = QualityTemplate.model_validate(data)
    except ValidationError as exc:
        errors.extend(_format_errors(exc))
        logger.debug("Template payload rejected: %d error(s)", len(errors))
        return TemplateValidationResult(valid=False, errors=errors)

    result = validate_template(template, config)
    if not errors:
        return result
    return TemplateValidationResult(
        valid=False,
        errors=[*errors, *result.errors],
        warnings=result.warnings,
    )


def _format_errors(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return messages
