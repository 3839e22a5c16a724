import pytest

from mhp.features.stress import (
    compute_stress_for_day,
    index_days,
    label_stress_score,
    stress_color_for_score,
    stress_hue_for_score,
)
from mhp.features.stress.models import AbsoluteThreshold, Baseline
from mhp.features.stress.service import compute_absolute_penalty, compute_stress_penalty

DAY = "2024-01-10"


def _history(days_builder, metric, values, end="2024-01-09"):
    days = days_builder(end, len(values))
    for record, value in zip(days, values):
        record[metric] = value
    return days


def _score(days, **today):
    record = {"dayKey": DAY}
    record.update(today)
    return compute_stress_for_day(index_days(days + [record]), DAY)


def test_day_with_no_metrics_has_no_score(days_builder):
    days = _history(days_builder, "sleep_hours", [7, 8, 7, 8, 7, 8])

    result = _score(days)

    assert result.score is None
    assert result.label is None
    assert result.missing_values == ["Sleep", "Resting HR", "Exercise load"]
    assert result.rows == []


def test_baseline_building_contributes_no_weight(days_builder):
    days = _history(days_builder, "sleep_hours", [7, 8, 7, 8])

    result = _score(days, sleep_hours=5.0)

    assert result.score is None
    assert result.missing_baselines == ["Sleep"]
    assert result.rows[0].value == "5.0 h (baseline building…)"


def test_z_score_penalty_for_short_sleep(days_builder):
    days = _history(days_builder, "sleep_hours", [7, 8, 7, 8, 7, 8])

    result = _score(days, sleep_hours=6.5)

    # mean 7.5, sd 0.5 -> z = -2 -> full penalty
    assert result.score == 0
    assert result.label == "Low"
    assert result.penalties["sleep_hours"].method == "z"
    assert result.rows[0].value == "6.5 h (Δ -1.0 h)"


def test_percentage_penalty_when_baseline_is_flat(days_builder):
    days = _history(days_builder, "sleep_hours", [8.0] * 6)

    result = _score(days, sleep_hours=7.2)

    penalty = result.penalties["sleep_hours"]
    assert penalty.method == "pct"
    assert penalty.penalty == pytest.approx(0.5)
    assert result.score == 50
    assert result.label == "Moderate"


def test_flat_zero_baseline_cannot_be_scored(days_builder):
    days = _history(days_builder, "workout_load", [0] * 6)

    result = _score(days, workout_load=50)

    assert result.score is None
    assert result.missing_baselines == ["Exercise load"]
    assert result.rows[0].value == "50 au (baseline: 0 au)"


def test_absolute_threshold_dominates_unhealthy_baseline(days_builder):
    # Resting HR has been high for two weeks; baseline alone sees nothing unusual
    days = _history(days_builder, "rhr_bpm", [75, 77, 75, 77, 75, 77])

    result = _score(days, rhr_bpm=76)

    penalty = result.penalties["rhr_bpm"]
    assert penalty.method == "z+abs"
    assert penalty.penalty == pytest.approx((76 - 60) / (78 - 60))
    assert result.score == 11


def test_weighted_composite_over_used_metrics(days_builder):
    days = _history(days_builder, "sleep_hours", [7, 8, 7, 8, 7, 8])
    for record, rhr in zip(days, [50, 52, 50, 52, 50, 52]):
        record["rhr_bpm"] = rhr

    result = _score(days, sleep_hours=6.5, rhr_bpm=51)

    # sleep penalty 1.0 (w 0.4), rhr penalty 0.0 (w 0.4), exercise missing
    assert result.score == 50
    assert result.missing_values == ["Exercise load"]
    assert [row.label for row in result.rows] == ["Sleep", "Resting HR"]


def test_more_sleep_never_lowers_score(days_builder):
    days = _history(days_builder, "sleep_hours", [7, 8, 7.5, 6.5, 8, 7])
    for record in days:
        record["rhr_bpm"] = 58

    scores = [_score(days, sleep_hours=hours / 2, rhr_bpm=58).score for hours in range(6, 24)]

    assert all(score is not None for score in scores)
    assert scores == sorted(scores)


def test_absolute_penalty_ramp():
    lower = AbsoluteThreshold(threshold=6.5, full=4.5)
    higher = AbsoluteThreshold(threshold=60, full=78)

    assert compute_absolute_penalty(7.0, "lower_worse", lower) == 0
    assert compute_absolute_penalty(5.5, "lower_worse", lower) == pytest.approx(0.5)
    assert compute_absolute_penalty(3.0, "lower_worse", lower) == 1
    assert compute_absolute_penalty(69, "higher_worse", higher) == pytest.approx(0.5)
    assert compute_absolute_penalty(69, "lower_worse", higher) is None
    assert compute_absolute_penalty(None, "higher_worse", higher) is None


def test_penalty_direction():
    baseline = Baseline(mean=60, sd=5, n=10)

    assert compute_stress_penalty(70, baseline, "higher_worse").penalty == 1
    assert compute_stress_penalty(70, baseline, "lower_worse").penalty == 0
    assert compute_stress_penalty(70, None, "higher_worse") is None


def test_labels_and_colors():
    assert label_stress_score(33) == "Low"
    assert label_stress_score(34) == "Moderate"
    assert label_stress_score(66) == "Moderate"
    assert label_stress_score(67) == "High"
    assert label_stress_score(None) is None

    assert stress_hue_for_score(50) == 60
    assert stress_hue_for_score(150) == 120
    assert stress_color_for_score(100) == "hsl(120, 78%, 45%)"
    assert stress_color_for_score(None) == "#FF3B30"
