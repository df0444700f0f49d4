"""Tests for defect configuration.

Covers: category-scoped editing, validation, threshold consistency warnings,
defect-equivalent calculations, proportional threshold scaling, and presets.
"""

import pytest
from pydantic import ValidationError

from src.templates.defects import (
    BRAZIL_SCA_DEFECTS,
    PREDEFINED_DEFECT_TEMPLATES,
    DefectCategory,
    DefectConfiguration,
    DefectDefinition,
    DefectTemplateCategory,
    DefectThresholds,
    add_defect,
    calculate_category_total,
    calculate_defect_equivalents,
    calculate_total_defects,
    check_threshold_consistency,
    clone_defect_template,
    create_empty_defect_configuration,
    evaluate_defect_counts,
    get_defects_by_category,
    load_defect_template,
    move_defect,
    remove_defect,
    scale_defect_thresholds,
    set_thresholds,
    validate_defect_configuration,
)
from src.templates.ordering import has_contiguous_order

P = DefectCategory.PRIMARY
S = DefectCategory.SECONDARY


def _make_config() -> DefectConfiguration:
    config = create_empty_defect_configuration()
    config = add_defect(config, "Full Black", P, 1.0)
    config = add_defect(config, "Full Sour", P, 1.0)
    config = add_defect(config, "Broken", S, 0.2)
    config = add_defect(config, "Shell", S, 0.2)
    config = add_defect(config, "Floater", S, 0.2)
    return set_thresholds(config, max_primary=5, max_secondary=45, max_total=50)


def _names(config: DefectConfiguration, category: DefectCategory) -> list[str]:
    return [d.name for d in get_defects_by_category(config.defects, category)]


# ===================================================================
# Category-scoped editing
# ===================================================================


class TestCategoryEditing:
    """Editing one category never disturbs the other."""

    def test_add_orders_per_category(self) -> None:
        config = _make_config()
        assert has_contiguous_order(get_defects_by_category(config.defects, P))
        assert has_contiguous_order(get_defects_by_category(config.defects, S))

    def test_add_secondary_keeps_primary(self) -> None:
        config = _make_config()
        before = get_defects_by_category(config.defects, P)
        config = add_defect(config, "Immature", S, 0.2)
        assert get_defects_by_category(config.defects, P) == before
        assert _names(config, S)[-1] == "Immature"

    def test_remove_primary_keeps_secondary(self) -> None:
        config = _make_config()
        before = get_defects_by_category(config.defects, S)
        config = remove_defect(config, P, 0)
        assert _names(config, P) == ["Full Sour"]
        assert get_defects_by_category(config.defects, P)[0].display_order == 0
        assert get_defects_by_category(config.defects, S) == before

    def test_remove_out_of_range_raises(self) -> None:
        with pytest.raises(IndexError):
            remove_defect(_make_config(), P, 5)

    def test_move_within_category(self) -> None:
        config = move_defect(_make_config(), S, 2, -1)
        assert _names(config, S) == ["Broken", "Floater", "Shell"]
        assert has_contiguous_order(get_defects_by_category(config.defects, S))
        assert _names(config, P) == ["Full Black", "Full Sour"]

    def test_thresholds_untouched_by_editing(self) -> None:
        config = remove_defect(_make_config(), S, 1)
        assert config.thresholds == DefectThresholds(max_primary=5, max_secondary=45, max_total=50)


# ===================================================================
# Validation
# ===================================================================


class TestValidateDefectConfiguration:
    """Structural checks."""

    def test_valid(self) -> None:
        assert validate_defect_configuration(_make_config()).valid

    def test_two_primaries_with_low_threshold_valid(self) -> None:
        config = DefectConfiguration(
            defects=[
                DefectDefinition(name="Full Black", category=P, weight=1.0, display_order=0),
                DefectDefinition(name="Full Sour", category=P, weight=1.0, display_order=1),
            ],
            thresholds=DefectThresholds(max_primary=1),
        )
        assert validate_defect_configuration(config).valid

    def test_thresholds_without_defects_invalid(self) -> None:
        config = DefectConfiguration(thresholds=DefectThresholds(max_primary=5))
        assert validate_defect_configuration(config).error == "At least one defect is required"

    def test_duplicate_name_in_category(self) -> None:
        config = add_defect(_make_config(), "full black", P, 1.0)
        assert validate_defect_configuration(config).error == (
            "Duplicate primary defect names are not allowed"
        )

    def test_same_name_across_categories_allowed(self) -> None:
        config = add_defect(_make_config(), "Full Black", S, 0.5)
        assert validate_defect_configuration(config).valid

    def test_zero_weight(self) -> None:
        config = add_defect(_make_config(), "Husk", S, 0)
        assert validate_defect_configuration(config).error == (
            'Defect "Husk" must have a weight greater than 0'
        )

    def test_nan_weight_rejected_at_parse(self) -> None:
        with pytest.raises(ValidationError):
            DefectDefinition(name="Husk", category=S, weight=float("nan"))

    def test_nan_weight_set_without_parsing(self) -> None:
        config = _make_config()
        bad = config.defects[0].model_copy(update={"weight": float("nan")})
        config = config.model_copy(update={"defects": [bad, *config.defects[1:]]})
        assert validate_defect_configuration(config).error == (
            'Defect "Full Black" must have a weight greater than 0'
        )

    def test_excessive_weight(self) -> None:
        config = add_defect(_make_config(), "Stone", P, 11)
        assert "unusually high" in validate_defect_configuration(config).error

    def test_negative_threshold(self) -> None:
        config = set_thresholds(_make_config(), max_total=-1)
        assert validate_defect_configuration(config).error == "Max total defects cannot be negative"

    def test_fractional_threshold_allowed(self) -> None:
        config = set_thresholds(_make_config(), max_secondary=22.5)
        assert validate_defect_configuration(config).valid

    def test_empty_configuration_is_empty(self) -> None:
        assert create_empty_defect_configuration().is_empty
        assert not _make_config().is_empty


class TestThresholdConsistency:
    """Contradictory totals are warnings, not errors."""

    def test_consistent_no_warnings(self) -> None:
        assert check_threshold_consistency(_make_config().thresholds) == []

    def test_total_below_primary(self) -> None:
        warnings = check_threshold_consistency(DefectThresholds(max_primary=8, max_total=5))
        assert warnings == ["max_total (5) is lower than max_primary (8)"]

    def test_total_below_both(self) -> None:
        warnings = check_threshold_consistency(
            DefectThresholds(max_primary=8, max_secondary=10, max_total=5),
        )
        assert len(warnings) == 2

    def test_no_total_no_warnings(self) -> None:
        assert check_threshold_consistency(DefectThresholds(max_primary=8)) == []


# ===================================================================
# Calculations
# ===================================================================


class TestDefectCalculations:
    """Full-defect equivalents and threshold comparison."""

    def test_equivalents_rounded(self) -> None:
        assert calculate_defect_equivalents(3, 0.33) == 0.99
        assert calculate_defect_equivalents(5, 0.2) == 1.0

    def test_category_and_total(self) -> None:
        defects = _make_config().defects
        counts = {"Full Black": 2, "Broken": 5, "Shell": 5}
        assert calculate_category_total(defects, counts, P) == 2.0
        assert calculate_category_total(defects, counts, S) == 2.0
        assert calculate_total_defects(defects, counts) == 4.0

    def test_unknown_defects_ignored(self) -> None:
        assert calculate_total_defects(_make_config().defects, {"Mystery": 10}) == 0

    def test_evaluate_within_limits(self) -> None:
        result = evaluate_defect_counts(_make_config(), {"Full Black": 3})
        assert result.valid
        assert result.primary_total == 3.0

    def test_evaluate_primary_exceeded(self) -> None:
        result = evaluate_defect_counts(_make_config(), {"Full Black": 4, "Full Sour": 2})
        assert not result.valid
        assert result.errors == ["Primary defects (6) exceed maximum allowed (5)"]

    def test_evaluate_with_scaled_thresholds(self) -> None:
        config = _make_config()
        half = scale_defect_thresholds(config.thresholds, 300, 150)
        assert not evaluate_defect_counts(config, {"Full Black": 3}, half).valid


class TestScaleThresholds:
    """Proportional rescaling to a different sample weight."""

    def test_half_sample(self) -> None:
        scaled = scale_defect_thresholds(BRAZIL_SCA_DEFECTS.configuration.thresholds, 300, 150)
        assert scaled == DefectThresholds(max_primary=2.5, max_secondary=43, max_total=45.5)

    def test_unset_stays_unset(self) -> None:
        scaled = scale_defect_thresholds(DefectThresholds(max_total=10), 300, 600)
        assert scaled.max_primary is None
        assert scaled.max_total == 20

    def test_non_positive_sample_raises(self) -> None:
        with pytest.raises(ValueError, match="greater than 0"):
            scale_defect_thresholds(DefectThresholds(), 0, 300)


# ===================================================================
# Presets
# ===================================================================


class TestDefectPresets:
    """Origin catalogues."""

    def test_all_presets_valid(self) -> None:
        for template in PREDEFINED_DEFECT_TEMPLATES:
            config = template.configuration
            assert validate_defect_configuration(config).valid, template.id
            assert check_threshold_consistency(config.thresholds) == [], template.id
            assert has_contiguous_order(get_defects_by_category(config.defects, P))
            assert has_contiguous_order(get_defects_by_category(config.defects, S))

    def test_brazil_thresholds(self) -> None:
        config = load_defect_template("brazil-sca-standard")
        assert config.thresholds == DefectThresholds(max_primary=5, max_secondary=86, max_total=91)

    def test_load_returns_copy(self) -> None:
        config = load_defect_template("colombia-standard")
        source = PREDEFINED_DEFECT_TEMPLATES[1].configuration
        assert config == source
        assert config is not source
        assert config.defects is not source.defects

    def test_unknown_template_raises(self) -> None:
        with pytest.raises(KeyError, match="not found"):
            load_defect_template("atlantis")

    def test_clone_is_custom(self) -> None:
        clone = clone_defect_template(BRAZIL_SCA_DEFECTS, "Our Brazil")
        assert clone.category == DefectTemplateCategory.CUSTOM
        assert not clone.is_system
        assert clone.name == "Our Brazil"
        assert clone.configuration == BRAZIL_SCA_DEFECTS.configuration
