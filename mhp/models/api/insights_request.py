"""
Insight API request models.
Used by routes for input validation; violations surface as 400s.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DAY_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

METRIC_FIELDS = (
    "sleep_hours",
    "rhr_bpm",
    "workout_load",
    "workout_minutes",
    "sugar_g",
    "steps",
    "calories",
    "protein_g",
    "weight_kg",
    "bp_systolic",
    "bp_diastolic",
)


def _check_day_key(value: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValueError("dayKey must be a calendar date (YYYY-MM-DD)") from e
    return value


class DailyRecord(BaseModel):
    """
    One calendar day of metrics. Every metric is optional; a missing field
    stays None and is never read as zero. Unknown fields are kept so they
    can be forwarded upstream unchanged.
    """

    model_config = ConfigDict(extra="allow")

    dayKey: str = Field(..., pattern=DAY_KEY_PATTERN)
    sleep_hours: float | None = None
    rhr_bpm: float | None = None
    workout_load: float | None = None
    workout_minutes: float | None = None
    sugar_g: float | None = None
    steps: float | None = None
    calories: float | None = None
    protein_g: float | None = None
    weight_kg: float | None = None
    bp_systolic: float | None = None
    bp_diastolic: float | None = None

    day_key_is_date = field_validator("dayKey")(_check_day_key)

    @field_validator(*METRIC_FIELDS, mode="before")
    @classmethod
    def _metric_not_bool(cls, value: Any) -> Any:
        # JSON true/false would otherwise coerce to 1.0/0.0
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value

    def upstream_view(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class StartInsightsRequest(BaseModel):
    """Body of POST /insights."""

    profileId: str = Field(..., min_length=1, max_length=200)
    profileName: str | None = Field(default=None, max_length=200)
    dayKey: str = Field(..., pattern=DAY_KEY_PATTERN)
    timeZone: str | None = Field(default=None, max_length=100)
    days: list[DailyRecord] = Field(..., min_length=1)

    day_key_is_date = field_validator("dayKey")(_check_day_key)

    @field_validator("profileId")
    @classmethod
    def _profile_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("profileId is required")
        return value

    @field_validator("profileName", "timeZone")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    def recent_days(self, max_days: int) -> list[DailyRecord]:
        return self.days[-max_days:] if max_days > 0 else []


class StressRequest(BaseModel):
    """Body of POST /stress."""

    dayKey: str = Field(..., pattern=DAY_KEY_PATTERN)
    days: list[DailyRecord] = Field(default_factory=list)

    day_key_is_date = field_validator("dayKey")(_check_day_key)
