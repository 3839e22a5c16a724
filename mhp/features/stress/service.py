"""
Stress scoring service - turns one day of metrics into a 0-100 score.

Each configured metric is compared with its rolling baseline (z-score when
the baseline has spread, percentage deviation otherwise) and with an
absolute threshold ramp. The larger of the two penalties wins. Weighted
penalties are averaged over the metrics that could be scored and inverted,
so a higher score means a calmer day.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any

from mhp.infrastructure.observability.logging import get_logger

from .baseline import compute_baseline_for_day, metric_value
from .models import (
    DEFAULT_STRESS_CONFIG,
    STRESS_INPUTS,
    AbsoluteThreshold,
    Baseline,
    Direction,
    MetricPenalty,
    StressConfig,
    StressInput,
    StressResult,
    StressRow,
)
from .stats import (
    add_days_to_key,
    clamp,
    clamp01,
    format_number,
    format_signed,
    is_finite_number,
    round_half_up,
    to_number,
)

logger = get_logger(__name__)

NO_SCORE_COLOR = "#FF3B30"


def compute_stress_penalty(
    value: Any,
    baseline: Baseline | None,
    direction: Direction,
    config: StressConfig = DEFAULT_STRESS_CONFIG,
) -> MetricPenalty | None:
    if not is_finite_number(value) or baseline is None or not is_finite_number(baseline.mean):
        return None
    diff = value - baseline.mean

    if is_finite_number(baseline.sd) and baseline.sd > 0:
        z = diff / baseline.sd
        signed_z = -z if direction == "lower_worse" else z
        return MetricPenalty(penalty=clamp01(signed_z / config.stress_z_to_full), diff=diff, method="z")

    if baseline.mean > 0:
        pct = diff / baseline.mean
        signed_pct = -pct if direction == "lower_worse" else pct
        return MetricPenalty(
            penalty=clamp01(signed_pct / config.stress_pct_to_full), diff=diff, method="pct"
        )

    return None


def compute_absolute_penalty(
    value: Any, direction: Direction, absolute: AbsoluteThreshold | None
) -> float | None:
    if not is_finite_number(value) or absolute is None:
        return None
    threshold = to_number(absolute.threshold)
    full = to_number(absolute.full)
    if threshold is None or full is None:
        return None

    if direction == "lower_worse":
        span = threshold - full
        if span <= 0:
            return None
        if value >= threshold:
            return 0.0
        return clamp01((threshold - value) / span)

    if direction == "higher_worse":
        span = full - threshold
        if span <= 0:
            return None
        if value <= threshold:
            return 0.0
        return clamp01((value - threshold) / span)

    return None


def merge_penalties(penalty: MetricPenalty, absolute_penalty: float | None) -> MetricPenalty:
    """The absolute ramp can raise a baseline penalty, never lower it."""
    if is_finite_number(absolute_penalty) and absolute_penalty > penalty.penalty:
        return replace(penalty, penalty=absolute_penalty, method=f"{penalty.method}+abs")
    return penalty


def label_stress_score(score: Any, config: StressConfig = DEFAULT_STRESS_CONFIG) -> str | None:
    if not is_finite_number(score):
        return None
    if score <= config.stress_low_max:
        return "Low"
    if score <= config.stress_moderate_max:
        return "Moderate"
    return "High"


def stress_hue_for_score(score: Any) -> float | None:
    if not is_finite_number(score):
        return None
    return (clamp(score, 0, 100) / 100) * 120


def stress_color_for_score(score: Any) -> str:
    hue = stress_hue_for_score(score)
    if hue is None:
        return NO_SCORE_COLOR
    return f"hsl({round_half_up(hue)}, 78%, 45%)"


def index_days(days: Iterable[Any]) -> dict[str, Any]:
    """Map dayKey -> record. Later records win on duplicate keys."""
    index: dict[str, Any] = {}
    for record in days:
        day_key = metric_value(record, "dayKey") or metric_value(record, "day_key")
        if isinstance(day_key, str) and day_key:
            index[day_key] = record
    return index


def compute_stress_for_day(
    day_by_key: Mapping[str, Any],
    day_key: str,
    config: StressConfig = DEFAULT_STRESS_CONFIG,
    inputs: Iterable[StressInput] = STRESS_INPUTS,
) -> StressResult:
    day = day_by_key.get(day_key)
    result = StressResult(day_key=day_key, score=None, label=None)

    used_weight = 0.0
    weighted_penalty = 0.0

    for stress_input in inputs:
        value = metric_value(day, stress_input.key)
        if not is_finite_number(value):
            result.missing_values.append(stress_input.label)
            continue

        shown = f"{format_number(value, stress_input.digits)} {stress_input.unit}"
        baseline = compute_baseline_for_day(day_by_key, day_key, stress_input.key, config)
        if baseline is None:
            result.missing_baselines.append(stress_input.label)
            result.rows.append(StressRow(stress_input.label, f"{shown} (baseline building…)"))
            continue

        penalty = compute_stress_penalty(value, baseline, stress_input.direction, config)
        if penalty is None:
            result.missing_baselines.append(stress_input.label)
            baseline_shown = format_number(baseline.mean, stress_input.digits)
            result.rows.append(
                StressRow(stress_input.label, f"{shown} (baseline: {baseline_shown} {stress_input.unit})")
            )
            continue

        absolute_penalty = compute_absolute_penalty(value, stress_input.direction, stress_input.absolute)
        merged = merge_penalties(penalty, absolute_penalty)

        used_weight += stress_input.weight
        weighted_penalty += stress_input.weight * merged.penalty
        result.penalties[stress_input.key] = merged

        delta = f"{format_signed(merged.diff, stress_input.digits)} {stress_input.unit}"
        result.rows.append(StressRow(stress_input.label, f"{shown} (Δ {delta})"))

    if used_weight <= 0:
        return result

    stress = round_half_up((weighted_penalty / used_weight) * 100)
    result.score = int(clamp(100 - stress, 0, 100))
    result.label = label_stress_score(result.score, config)

    logger.debug(
        "Stress score computed",
        day_key=day_key,
        score=result.score,
        label=result.label,
        used_weight=round(used_weight, 3),
    )
    return result
