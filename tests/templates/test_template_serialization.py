"""Tests for template JSON serialization."""

import json
from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.templates.aspects import load_aspect_template
from src.templates.cupping import load_cupping_template
from src.templates.defects import load_defect_template
from src.templates.micro_regions import (
    MicroRegionConfiguration,
    MicroRegionPercentageConstraint,
    MicroRegionRequirement,
)
from src.templates.sharing import LaboratoryScope
from src.templates.taints_faults import load_taint_fault_template
from src.templates.template import (
    MoistureStandard,
    TemplateParameters,
    deserialize_parameters,
    deserialize_template,
    serialize_parameters,
    serialize_template,
)


def _full_parameters(base: TemplateParameters) -> TemplateParameters:
    return base.model_copy(update={
        "green_aspect_configuration": load_aspect_template("green-standard"),
        "roast_aspect_configuration": load_aspect_template("roast-detailed"),
        "defect_configuration": load_defect_template("colombia-standard"),
        "moisture_min": 10,
        "moisture_max": 12,
        "moisture_standard": MoistureStandard.ISO_6673,
        "roast_sample_size_grams": 100,
        "max_quakers": 2,
        "cupping_attributes": load_cupping_template("brazil-traditional"),
        "taint_fault_configuration": load_taint_fault_template("zero-tolerance"),
        "micro_region_configuration": MicroRegionConfiguration(requirements=[
            MicroRegionRequirement(
                origin="Colombia",
                required_micro_regions=["Huila"],
                percentage_per_region={"Huila": MicroRegionPercentageConstraint(min=80)},
                allow_mix=False,
            ),
        ]),
    })


class TestParameterSerialization:
    """Parameters survive a JSON round-trip."""

    def test_full_round_trip(self, valid_parameters) -> None:
        params = _full_parameters(valid_parameters)
        data = json.loads(json.dumps(serialize_parameters(params)))
        assert deserialize_parameters(data) == params

    def test_unset_fields_omitted(self) -> None:
        data = serialize_parameters(TemplateParameters())
        assert "moisture_min" not in data
        assert "defect_configuration" not in data
        assert data["cupping_attributes"] == []

    def test_scales_carry_their_tag(self, valid_parameters) -> None:
        data = serialize_parameters(_full_parameters(valid_parameters))
        scales = [a["scale"]["type"] for a in data["cupping_attributes"]]
        assert scales[0] == "wording"
        assert set(scales[1:]) == {"numeric"}

    def test_zero_tolerance_rules_serialized_alone(self, valid_parameters) -> None:
        data = serialize_parameters(_full_parameters(valid_parameters))
        rules = data["taint_fault_configuration"]["rules"]
        assert rules["zero_tolerance"] is True
        assert "max_taints" not in rules

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValidationError):
            deserialize_parameters({"sample_size_grams": 300, "grind": "fine"})


class TestTemplateSerialization:
    """Whole templates."""

    def test_round_trip(self, valid_template) -> None:
        template = valid_template.model_copy(
            update={"sharing": LaboratoryScope(laboratory_ids=[uuid4()])},
        )
        data = json.loads(json.dumps(serialize_template(template)))
        assert deserialize_template(data) == template

    def test_sharing_serialized_as_variant(self, valid_template) -> None:
        data = serialize_template(valid_template)
        assert data["sharing"] == {"kind": "private"}
        assert "is_global" not in data

    def test_missing_sharing_kind_rejected(self, valid_template) -> None:
        data = serialize_template(valid_template)
        data["sharing"] = {"laboratory_ids": [str(uuid4())]}
        with pytest.raises(ValidationError):
            deserialize_template(data)

    def test_version_must_be_positive(self, valid_template) -> None:
        data = serialize_template(valid_template)
        data["version"] = 0
        with pytest.raises(ValidationError):
            deserialize_template(data)
