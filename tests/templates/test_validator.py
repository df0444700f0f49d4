"""Tests for whole-template validation.

Covers: aggregation across components, valid-by-absence of optional
sub-configurations, scalar parameter checks, soft warnings, and raw
payload handling including the legacy sharing flags.
"""

from uuid import uuid4

from src.templates.aspects import AspectConfiguration, AspectWording, load_aspect_template
from src.templates.config import TemplateValidationConfig
from src.templates.defects import (
    DefectCategory,
    DefectConfiguration,
    DefectDefinition,
    DefectThresholds,
    load_defect_template,
)
from src.templates.micro_regions import (
    MicroRegionConfiguration,
    MicroRegionPercentageConstraint,
    MicroRegionRequirement,
)
from src.templates.screen_sizes import (
    ScreenConstraintType,
    ScreenSizeConstraint,
    ScreenSizeRequirements,
)
from src.templates.sharing import GlobalScope
from src.templates.taints_faults import (
    TaintFaultConfiguration,
    TaintFaultValidationRules,
    load_taint_fault_template,
)
from src.templates.template import LocalizedText, QualityTemplate, serialize_template
from src.templates.validator import (
    TemplateValidator,
    validate_template,
    validate_template_payload,
)


def _with_params(template: QualityTemplate, **changes: object) -> QualityTemplate:
    params = template.parameters.model_copy(update=changes)
    return template.model_copy(update={"parameters": params})


def _primary(name: str, weight: float = 1.0) -> DefectDefinition:
    return DefectDefinition(name=name, category=DefectCategory.PRIMARY, weight=weight)


# ===================================================================
# Whole template
# ===================================================================


class TestTemplateValidator:
    """Aggregation and required components."""

    def test_valid_template(self, valid_template) -> None:
        result = TemplateValidator().validate(valid_template)
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_identity_errors_aggregate(self, valid_template) -> None:
        template = valid_template.model_copy(
            update={"name": LocalizedText(en="  "), "origin": ""},
        )
        result = validate_template(template)
        assert not result.valid
        assert result.errors == ["Template name is required", "Origin is required"]

    def test_missing_screen_sizes(self, valid_template) -> None:
        template = _with_params(valid_template, screen_size_requirements=ScreenSizeRequirements())
        assert validate_template(template).errors == [
            "At least one screen size constraint is required",
        ]

    def test_missing_cupping(self, valid_template) -> None:
        template = _with_params(valid_template, cupping_attributes=[])
        assert validate_template(template).errors == [
            "At least one cupping attribute is required",
        ]

    def test_inverted_range(self, valid_template) -> None:
        requirements = ScreenSizeRequirements(constraints=[
            ScreenSizeConstraint(
                screen_size="Screen 16",
                constraint_type=ScreenConstraintType.RANGE,
                min_value=60,
                max_value=40,
            ),
        ])
        template = _with_params(valid_template, screen_size_requirements=requirements)
        assert validate_template(template).errors == [
            "Screen sizes: Screen 16: range min_value must be less than max_value",
        ]

    def test_one_error_per_component(self, valid_template) -> None:
        defects = DefectConfiguration(defects=[
            _primary(""),
            _primary("Sour", weight=-1),
        ])
        template = _with_params(
            valid_template,
            moisture_min=20,
            moisture_max=10,
            defect_configuration=defects,
        )
        assert validate_template(template).errors == [
            "Moisture minimum must be less than maximum",
            "Defects: Defect names cannot be empty",
        ]

    def test_full_preset_template_valid(self, valid_template) -> None:
        template = _with_params(
            valid_template,
            green_aspect_configuration=load_aspect_template("green-standard"),
            roast_aspect_configuration=load_aspect_template("roast-standard"),
            defect_configuration=load_defect_template("brazil-sca-standard"),
            taint_fault_configuration=load_taint_fault_template("sca-standard"),
            moisture_min=10,
            moisture_max=12.5,
            roast_sample_size_grams=100,
            max_quakers=3,
        )
        assert validate_template(template).valid


class TestOptionalComponents:
    """Never-configured sub-configurations are valid by absence."""

    def test_empty_sub_configurations(self, valid_template) -> None:
        template = _with_params(
            valid_template,
            green_aspect_configuration=AspectConfiguration(),
            defect_configuration=DefectConfiguration(),
            taint_fault_configuration=TaintFaultConfiguration(),
            micro_region_configuration=MicroRegionConfiguration(),
        )
        assert validate_template(template).valid

    def test_thresholds_without_defects(self, valid_template) -> None:
        defects = DefectConfiguration(thresholds=DefectThresholds(max_total=5))
        template = _with_params(valid_template, defect_configuration=defects)
        assert validate_template(template).errors == [
            "Defects: At least one defect is required",
        ]

    def test_defect_threshold_met_exactly(self, valid_template) -> None:
        defects = DefectConfiguration(
            defects=[_primary("Full Black"), _primary("Full Sour")],
            thresholds=DefectThresholds(max_primary=1),
        )
        template = _with_params(valid_template, defect_configuration=defects)
        assert validate_template(template).valid

    def test_invalid_aspect_reported(self, valid_template) -> None:
        aspect = AspectConfiguration(wordings=[
            AspectWording(label="Green", value=8),
            AspectWording(label="green", value=7, display_order=1),
        ])
        template = _with_params(valid_template, roast_aspect_configuration=aspect)
        assert validate_template(template).errors == [
            "Roast aspect: Duplicate wording labels are not allowed",
        ]

    def test_invalid_taint_rules_reported(self, valid_template) -> None:
        config = load_taint_fault_template("sca-standard").model_copy(
            update={"rules": TaintFaultValidationRules(max_combined=-2)},
        )
        template = _with_params(valid_template, taint_fault_configuration=config)
        assert validate_template(template).errors == [
            "Taints/faults: Max combined must be non-negative",
        ]

    def test_invalid_micro_region_reported(self, valid_template) -> None:
        config = MicroRegionConfiguration(requirements=[
            MicroRegionRequirement(origin=""),
        ])
        template = _with_params(valid_template, micro_region_configuration=config)
        assert validate_template(template).errors == [
            "Micro-regions: Origin is required for each requirement",
        ]


class TestScalarParameters:
    """Sample sizes, moisture, quakers."""

    def test_sample_size(self, valid_template) -> None:
        template = _with_params(valid_template, sample_size_grams=0)
        assert validate_template(template).errors == ["Sample size must be greater than 0"]

    def test_nan_sample_size_set_without_parsing(self, valid_template) -> None:
        template = _with_params(valid_template, sample_size_grams=float("nan"))
        assert validate_template(template).errors == ["Sample size must be greater than 0"]

    def test_unset_sample_size_allowed(self, valid_template) -> None:
        template = _with_params(valid_template, sample_size_grams=None)
        assert validate_template(template).valid

    def test_moisture_out_of_bounds(self, valid_template) -> None:
        template = _with_params(valid_template, moisture_max=120)
        assert validate_template(template).errors == [
            "Moisture maximum must be between 0 and 100",
        ]

    def test_moisture_bounds_configurable(self, valid_template) -> None:
        template = _with_params(valid_template, moisture_min=10, moisture_max=14)
        config = TemplateValidationConfig(moisture_max_bound=13)
        assert validate_template(template, config).errors == [
            "Moisture maximum must be between 0 and 13",
        ]

    def test_roast_sample_size(self, valid_template) -> None:
        template = _with_params(valid_template, roast_sample_size_grams=-5)
        assert validate_template(template).errors == [
            "Roast sample size must be greater than 0",
        ]

    def test_quakers(self, valid_template) -> None:
        template = _with_params(valid_template, max_quakers=-1)
        assert validate_template(template).errors == ["Max quakers cannot be negative"]


class TestWarnings:
    """Soft inconsistencies never affect validity."""

    def test_total_below_category_limit(self, valid_template) -> None:
        defects = DefectConfiguration(
            defects=[_primary("Full Black")],
            thresholds=DefectThresholds(max_primary=8, max_total=5),
        )
        result = validate_template(_with_params(valid_template, defect_configuration=defects))
        assert result.valid
        assert result.warnings == ["Defects: max_total (5) is lower than max_primary (8)"]

    def test_micro_region_minimums_over_100(self, valid_template) -> None:
        requirement = MicroRegionRequirement(
            origin="Brazil",
            required_micro_regions=["Cerrado Mineiro", "Mogiana"],
            percentage_per_region={
                "Cerrado Mineiro": MicroRegionPercentageConstraint(min=60),
                "Mogiana": MicroRegionPercentageConstraint(min=60),
            },
        )
        config = MicroRegionConfiguration(requirements=[requirement])
        result = validate_template(
            _with_params(valid_template, micro_region_configuration=config),
        )
        assert result.valid
        assert result.warnings == [
            'Micro-regions: minimum percentages for "Brazil" add up to 120%',
        ]


# ===================================================================
# Raw payloads
# ===================================================================


class TestValidateTemplatePayload:
    """Decoded JSON in, messages out."""

    def test_serialized_valid_template(self, valid_template) -> None:
        assert validate_template_payload(serialize_template(valid_template)).valid

    def test_global_flag(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["is_global"] = True
        assert validate_template_payload(payload).valid

    def test_laboratory_flags(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["is_global"] = False
        payload["laboratory_ids"] = [str(uuid4())]
        assert validate_template_payload(payload).valid

    def test_global_and_laboratories_rejected(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["is_global"] = True
        payload["laboratory_ids"] = [str(uuid4())]
        result = validate_template_payload(payload)
        assert not result.valid
        assert result.errors == [
            "A global template cannot also be assigned to specific laboratories",
        ]

    def test_sharing_and_flags_rejected(self, valid_template) -> None:
        payload = serialize_template(valid_template.model_copy(update={"sharing": GlobalScope()}))
        payload["is_global"] = True
        result = validate_template_payload(payload)
        assert result.errors == ["Provide either sharing or is_global/laboratory_ids, not both"]

    def test_bad_laboratory_id(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["laboratory_ids"] = ["not-a-uuid"]
        result = validate_template_payload(payload)
        assert not result.valid
        assert result.errors[0].startswith("laboratory_ids")

    def test_non_list_laboratory_ids(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["laboratory_ids"] = 5
        result = validate_template_payload(payload)
        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].startswith("laboratory_ids: ")

    def test_non_boolean_global_flag(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["sharing"]
        payload["is_global"] = "sometimes"
        result = validate_template_payload(payload)
        assert not result.valid
        assert result.errors[0].startswith("is_global: ")

    def test_nan_sample_size_rejected(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        payload["parameters"]["sample_size_grams"] = float("nan")
        result = validate_template_payload(payload)
        assert not result.valid
        assert result.errors[0].startswith("parameters.sample_size_grams: ")

    def test_type_errors_become_messages(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        payload["created_by"] = "somebody"
        payload["version"] = 0
        result = validate_template_payload(payload)
        assert not result.valid
        assert any(e.startswith("created_by: ") for e in result.errors)
        assert any(e.startswith("version: ") for e in result.errors)

    def test_untagged_scale_rejected(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        del payload["parameters"]["cupping_attributes"][0]["scale"]["type"]
        result = validate_template_payload(payload)
        assert not result.valid
        assert result.errors[0].startswith("parameters.cupping_attributes.0.scale")

    def test_semantic_errors_after_parsing(self, valid_template) -> None:
        payload = serialize_template(valid_template)
        payload["origin"] = " "
        assert validate_template_payload(payload).errors == ["Origin is required"]
