"""
Stress scoring shapes.

StressInput rows are static configuration; Baseline and StressResult are
derived per request and never stored.
"""

from dataclasses import dataclass, field
from typing import Literal

Direction = Literal["lower_worse", "higher_worse"]


@dataclass(frozen=True, slots=True)
class AbsoluteThreshold:
    """Linear penalty ramp: 0 at `threshold`, 1 at `full`."""

    threshold: float
    full: float


@dataclass(frozen=True, slots=True)
class StressInput:
    key: str
    label: str
    unit: str
    digits: int
    direction: Direction
    weight: float
    absolute: AbsoluteThreshold | None = None


@dataclass(frozen=True, slots=True)
class StressConfig:
    baseline_lookback_days: int = 14
    baseline_min_points: int = 5
    stress_z_to_full: float = 2.0
    stress_pct_to_full: float = 0.2
    stress_low_max: float = 33
    stress_moderate_max: float = 66


@dataclass(frozen=True, slots=True)
class Baseline:
    mean: float
    sd: float | None
    n: int


@dataclass(frozen=True, slots=True)
class MetricPenalty:
    penalty: float
    diff: float
    method: str  # "z", "pct", optionally suffixed with "+abs"


@dataclass(frozen=True, slots=True)
class StressRow:
    label: str
    value: str


@dataclass(slots=True)
class StressResult:
    day_key: str
    score: int | None
    label: str | None
    rows: list[StressRow] = field(default_factory=list)
    missing_values: list[str] = field(default_factory=list)
    missing_baselines: list[str] = field(default_factory=list)
    penalties: dict[str, MetricPenalty] = field(default_factory=dict)


DEFAULT_STRESS_CONFIG = StressConfig()

STRESS_INPUTS: tuple[StressInput, ...] = (
    StressInput(
        key="sleep_hours",
        label="Sleep",
        unit="h",
        digits=1,
        direction="lower_worse",
        weight=0.4,
        absolute=AbsoluteThreshold(threshold=6.5, full=4.5),
    ),
    StressInput(
        key="rhr_bpm",
        label="Resting HR",
        unit="bpm",
        digits=0,
        direction="higher_worse",
        weight=0.4,
        absolute=AbsoluteThreshold(threshold=60, full=78),
    ),
    StressInput(
        key="workout_load",
        label="Exercise load",
        unit="au",
        digits=0,
        direction="higher_worse",
        weight=0.2,
        absolute=AbsoluteThreshold(threshold=110, full=220),
    ),
)
