"""
Rolling baselines over a trailing window of daily records.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import DEFAULT_STRESS_CONFIG, Baseline, StressConfig
from .stats import add_days_to_key, is_finite_number, mean, stddev

DayIndex = Mapping[str, Any]


def metric_value(record: Any, metric_key: str) -> Any:
    """Read a metric from a DailyRecord model or a plain dict."""
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(metric_key)
    return getattr(record, metric_key, None)


def window_day_keys(end_day_key: str, length: int) -> list[str]:
    """Calendar day keys for the `length` days ending at `end_day_key` inclusive."""
    return [add_days_to_key(end_day_key, -offset) for offset in range(length - 1, -1, -1)]


def compute_baseline(
    day_by_key: DayIndex,
    end_day_key_exclusive: str,
    metric_key: str,
    lookback_days: int,
    min_points: int,
) -> Baseline | None:
    """
    Baseline for `metric_key` over the `lookback_days` calendar days that end
    the day before `end_day_key_exclusive`.

    Missing days and missing fields are skipped. Returns None when fewer
    than `min_points` finite values are available.
    """
    if lookback_days <= 0:
        return None
    last_day = add_days_to_key(end_day_key_exclusive, -1)
    values = [
        float(value)
        for value in (
            metric_value(day_by_key.get(day_key), metric_key)
            for day_key in window_day_keys(last_day, lookback_days)
        )
        if is_finite_number(value)
    ]
    if not values or len(values) < min_points:
        return None

    avg = mean(values)
    sd = stddev(values)
    return Baseline(mean=avg, sd=sd if is_finite_number(sd) else None, n=len(values))


def compute_baseline_for_day(
    day_by_key: DayIndex,
    day_key: str,
    metric_key: str,
    config: StressConfig = DEFAULT_STRESS_CONFIG,
) -> Baseline | None:
    return compute_baseline(
        day_by_key,
        day_key,
        metric_key,
        config.baseline_lookback_days,
        config.baseline_min_points,
    )
