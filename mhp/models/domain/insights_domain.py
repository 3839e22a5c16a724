"""
Insight job domain model.

A job is created `pending` and replaced exactly once by a terminal record
(`done` or `error`). Records are immutable so a reader holding one never
sees a half-written terminal state.
"""

from dataclasses import dataclass, replace
from typing import Literal

JobStatus = Literal["pending", "done", "error"]

JOB_STATUS_PENDING: JobStatus = "pending"
JOB_STATUS_DONE: JobStatus = "done"
JOB_STATUS_ERROR: JobStatus = "error"

INSIGHT_SECTIONS: tuple[str, ...] = (
    "overall",
    "sleep",
    "stress",
    "exercise",
    "nutrition",
    "bp",
    "weight",
)


@dataclass(frozen=True, slots=True)
class InsightJob:
    job_id: str
    status: JobStatus
    created_at: float  # epoch seconds
    day_key: str
    profile_id: str | None = None
    model: str | None = None
    insights: dict[str, dict[str, str]] | None = None
    error: str | None = None
    raw: str | None = None
    completed_at: float | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JOB_STATUS_PENDING

    def age_seconds(self, now: float) -> float:
        return now - self.created_at

    def as_done(self, insights: dict[str, dict[str, str]], completed_at: float) -> "InsightJob":
        return replace(self, status=JOB_STATUS_DONE, insights=insights, completed_at=completed_at)

    def as_error(self, message: str, raw: str | None, completed_at: float) -> "InsightJob":
        return replace(
            self, status=JOB_STATUS_ERROR, error=message, raw=raw, completed_at=completed_at
        )

    def is_well_formed(self) -> bool:
        """Structural sanity check used by pruning."""
        if not isinstance(self.job_id, str) or not self.job_id:
            return False
        if self.status not in (JOB_STATUS_PENDING, JOB_STATUS_DONE, JOB_STATUS_ERROR):
            return False
        if not isinstance(self.created_at, (int, float)) or isinstance(self.created_at, bool):
            return False
        if self.status == JOB_STATUS_DONE and self.insights is None:
            return False
        if self.status == JOB_STATUS_ERROR and not self.error:
            return False
        return True

