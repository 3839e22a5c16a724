"""
Numeric helpers shared by the baseline and stress engines.

Absent values are None, never 0. Anything that is not a finite real number
is treated as absent.
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

MISSING_DISPLAY = "—"


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and math.isfinite(value)


def to_number(value: Any) -> float | None:
    """Coerce numbers and numeric strings; anything else is None."""
    if is_finite_number(value):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return statistics.fmean(values)


def stddev(values: Sequence[float]) -> float | None:
    """Population standard deviation (divides by N)."""
    if not values:
        return None
    return statistics.pstdev(values)


def round_half_up(value: float) -> int:
    # Halves round toward +infinity, unlike round()
    return math.floor(value + 0.5)


def format_number(value: Any, digits: int) -> str:
    if not is_finite_number(value):
        return MISSING_DISPLAY
    return f"{value:.{digits}f}"


def format_signed(value: Any, digits: int) -> str:
    if not is_finite_number(value):
        return MISSING_DISPLAY
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{digits}f}"


def add_days_to_key(day_key: str, days: int) -> str:
    return (date.fromisoformat(day_key) + timedelta(days=days)).isoformat()
