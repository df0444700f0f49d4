"""Shared pytest fixtures for the quality template test suite.

Provides:
- author_id: the user creating templates
- valid_parameters: minimal complete parameters (one screen size, SCA cupping)
- valid_template: a template that passes validation
"""

from uuid import uuid4

import pytest

from src.templates.cupping import load_cupping_template
from src.templates.screen_sizes import (
    ScreenConstraintType,
    ScreenSizeConstraint,
    ScreenSizeRequirements,
)
from src.templates.template import LocalizedText, QualityTemplate, TemplateParameters


@pytest.fixture()
def author_id():
    return uuid4()


@pytest.fixture()
def valid_parameters() -> TemplateParameters:
    """300g sample, Screen 17 at least 60%, SCA cupping form."""
    return TemplateParameters(
        sample_size_grams=300,
        screen_size_requirements=ScreenSizeRequirements(
            constraints=[
                ScreenSizeConstraint(
                    screen_size="Screen 17",
                    constraint_type=ScreenConstraintType.MINIMUM,
                    min_value=60,
                ),
            ],
        ),
        cupping_attributes=load_cupping_template("sca-standard"),
    )


@pytest.fixture()
def valid_template(author_id, valid_parameters) -> QualityTemplate:
    return QualityTemplate(
        name=LocalizedText(en="Brazil Specialty", pt="Brasil Especial"),
        origin="Brazil",
        parameters=valid_parameters,
        created_by=author_id,
    )
