"""
insights.py
-----------
Purpose:
    Start and poll asynchronous insight generation jobs.

    - POST /insights validates the body, registers a pending job and answers
      202 with its id right away.
    - GET /insights?jobId=... reports pending (202), done (200), error (500)
      or unknown/expired (404).

    Both routes sit behind the insight rate limiters and the shared-secret
    check. Errors render as {"ok": false, "error": ...}.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from mhp.auth.verify import proxy_secret_dependency
from mhp.errors import InsightsNotFoundError, InsightsValidationError
from mhp.infrastructure.observability.logging import get_logger
from mhp.middleware.rate_limit_dependencies import rate_limit_insights
from mhp.models.api.insights_request import StartInsightsRequest
from mhp.models.api.insights_response import (
    JobDoneResponse,
    JobErrorResponse,
    JobPendingResponse,
)
from mhp.models.domain.insights_domain import JOB_STATUS_DONE, JOB_STATUS_PENDING
from mhp.services.insights_orchestrator import ANALYSIS_VERSION, InsightsOrchestrator

router = APIRouter()
logger = get_logger(__name__)


def get_orchestrator(request: Request) -> InsightsOrchestrator:
    return request.app.state.orchestrator


def describe_validation_error(error: ValidationError) -> str:
    """First validation problem as `field: message`."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Invalid request: {location}: {first.get('msg', 'invalid value')}"


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise InsightsValidationError("Request body must be valid JSON") from e


@router.post(
    "/insights",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=JobPendingResponse,
    dependencies=[Depends(rate_limit_insights), Depends(proxy_secret_dependency)],
)
async def start_insights(
    request: Request,
    orchestrator: InsightsOrchestrator = Depends(get_orchestrator),
):
    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise InsightsValidationError("Request body must be a JSON object")

    try:
        payload = StartInsightsRequest.model_validate(body)
    except ValidationError as e:
        raise InsightsValidationError(describe_validation_error(e)) from e

    if not orchestrator.llm_service.configured:
        raise InsightsValidationError("OPENAI_API_KEY is not configured on the server")

    job = orchestrator.start_job(payload)
    return JobPendingResponse(jobId=job.job_id)


@router.get(
    "/insights",
    response_model=None,
    dependencies=[Depends(rate_limit_insights), Depends(proxy_secret_dependency)],
)
async def poll_insights(
    request: Request,
    jobId: str | None = None,
    orchestrator: InsightsOrchestrator = Depends(get_orchestrator),
):
    job_id = (jobId or "").strip()
    if not job_id:
        raise InsightsValidationError("jobId is required")

    job = orchestrator.job_store.get_job(job_id)
    if job is None:
        raise InsightsNotFoundError("Job not found (it may have expired)")

    if job.status == JOB_STATUS_PENDING:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=JobPendingResponse(jobId=job.job_id).model_dump(),
        )

    if job.status == JOB_STATUS_DONE:
        return JobDoneResponse(
            jobId=job.job_id,
            model=job.model,
            dayKey=job.day_key,
            analysisVersion=ANALYSIS_VERSION,
            insights=job.insights,
        )

    settings = request.app.state.settings
    error = JobErrorResponse(error=job.error or "AI insights generation failed")
    if not settings.is_production() and job.raw:
        error.raw = job.raw
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error.model_dump(exclude_none=True),
    )
