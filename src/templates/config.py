"""Validation limits for the template engine.

Every numeric bound the component validators enforce is collected here so a
host application can tighten or relax them per laboratory without touching
validator code.

Deterministic -- no I/O.
"""

from __future__ import annotations

from pydantic import Field

from src.models.common import QualityEngineBase


class TemplateValidationConfig(QualityEngineBase, frozen=True):
    """Configuration for the template validators.

    Defaults mirror the grading conventions the preset catalogues use
    (aspect wordings on a 1-10 scale, SCA-style defect weights, 0-100%
    distributions).
    """

    score_tolerance: float = Field(default=0.01, gt=0)

    aspect_value_min: float = 1.0
    aspect_value_max: float = 10.0

    percentage_min: float = 0.0
    percentage_max: float = 100.0

    max_defect_weight: float = 10.0

    moisture_min_bound: float = 0.0
    moisture_max_bound: float = 100.0
