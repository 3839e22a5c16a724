"""
Baseline-relative stress scoring.

Public API:
- compute_baseline / compute_baseline_for_day
- compute_stress_for_day, index_days
- label_stress_score, stress_color_for_score, stress_hue_for_score
"""

from .baseline import compute_baseline, compute_baseline_for_day
from .models import STRESS_INPUTS, StressConfig, StressResult
from .service import (
    compute_stress_for_day,
    index_days,
    label_stress_score,
    stress_color_for_score,
    stress_hue_for_score,
)

__all__ = [
    "STRESS_INPUTS",
    "StressConfig",
    "StressResult",
    "compute_baseline",
    "compute_baseline_for_day",
    "compute_stress_for_day",
    "index_days",
    "label_stress_score",
    "stress_color_for_score",
    "stress_hue_for_score",
]
