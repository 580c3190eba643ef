"""Render module for projection output display."""

from render.renderers import (
    BaseRenderer,
    SummaryRenderer,
    ScheduleRenderer,
    ComparisonRenderer,
    BenefitsRenderer,
    CsvRenderer,
    RENDERER_REGISTRY,
)

__all__ = [
    'BaseRenderer',
    'SummaryRenderer',
    'ScheduleRenderer',
    'ComparisonRenderer',
    'BenefitsRenderer',
    'CsvRenderer',
    'RENDERER_REGISTRY',
]
