"""
Insight API response models.
"""

from typing import Literal

from pydantic import BaseModel


class InsightSection(BaseModel):
    title: str
    body: str


class OpenAIStatus(BaseModel):
    configured: bool
    model: str


class HealthResponse(BaseModel):
    ok: bool = True
    openai: OpenAIStatus


class JobPendingResponse(BaseModel):
    ok: bool = True
    jobId: str
    status: Literal["pending"] = "pending"


class JobDoneResponse(BaseModel):
    ok: bool = True
    jobId: str
    status: Literal["done"] = "done"
    model: str | None
    dayKey: str
    analysisVersion: int
    insights: dict[str, InsightSection]


class JobErrorResponse(BaseModel):
    ok: bool = False
    error: str
    raw: str | None = None


class StressRowResponse(BaseModel):
    label: str
    value: str


class StressSummary(BaseModel):
    dayKey: str
    score: int | None
    label: str | None
    color: str
    rows: list[StressRowResponse]
    missingValues: list[str]
    missingBaselines: list[str]


class StressResponse(BaseModel):
    ok: bool = True
    stress: StressSummary
