"""
Insight job orchestration.

start_job validates nothing itself (routes hand it a validated request),
registers a pending job and spawns the upstream call as a background task.
The task performs exactly one terminal write: complete_job on a valid
payload, fail_job on anything else. Nobody awaits the task; pollers read
the outcome from the JobStore.
"""

import asyncio
import time

from mhp.errors import InsightsUpstreamError
from mhp.infrastructure.observability.logging import get_logger
from mhp.models.api.insights_request import StartInsightsRequest
from mhp.models.domain.insights_domain import InsightJob
from mhp.services.insights_llm_service import InsightsLLMService
from mhp.services.insights_payload import parse_insights, truncate_raw
from mhp.services.job_store import JobStore

logger = get_logger(__name__)

ANALYSIS_VERSION = 1

INVALID_PAYLOAD_MESSAGE = "AI returned an invalid insights payload"
GENERATION_FAILED_MESSAGE = "AI insights generation failed"


class InsightsOrchestrator:
    def __init__(
        self,
        job_store: JobStore,
        llm_service: InsightsLLMService,
        max_days: int = 14,
        default_time_zone: str = "America/Los_Angeles",
        raw_preview_chars: int = 4000,
    ):
        self.job_store = job_store
        self.llm_service = llm_service
        self.max_days = max_days
        self.default_time_zone = default_time_zone
        self.raw_preview_chars = raw_preview_chars
        self._tasks: set[asyncio.Task] = set()

    @property
    def model(self) -> str:
        return self.llm_service.model

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    def start_job(self, request: StartInsightsRequest) -> InsightJob:
        """Register a pending job and schedule its completion. Must run on the event loop."""
        job = self.job_store.create_job(request.dayKey, profile_id=request.profileId, model=self.model)

        task = asyncio.create_task(self._complete(job.job_id, request), name=f"insights:{job.job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def _complete(self, job_id: str, request: StartInsightsRequest) -> None:
        started = time.monotonic()
        days = [day.upstream_view() for day in request.recent_days(self.max_days)]
        raw: str | None = None

        try:
            raw = await self.llm_service.generate(
                day_key=request.dayKey,
                days=days,
                time_zone=request.timeZone or self.default_time_zone,
                profile_name=request.profileName,
            )
            insights = parse_insights(raw)
            if insights is None:
                raise InsightsUpstreamError(INVALID_PAYLOAD_MESSAGE, raw=raw)
        except InsightsUpstreamError as e:
            self._fail(job_id, str(e), e.raw if e.raw is not None else raw, started)
            return
        except Exception as e:
            logger.error(
                "Unexpected error generating insights",
                job_id=job_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._fail(job_id, GENERATION_FAILED_MESSAGE, raw, started)
            return

        if self.job_store.complete_job(job_id, insights):
            logger.info(
                "Insight job completed",
                job_id=job_id,
                day_key=request.dayKey,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )
        else:
            logger.warning("Insight job already finished or pruned", job_id=job_id)

    def _fail(self, job_id: str, message: str, raw: str | None, started: float) -> None:
        written = self.job_store.fail_job(job_id, message, truncate_raw(raw, self.raw_preview_chars))
        logger.warning(
            "Insight job failed",
            job_id=job_id,
            error=message,
            recorded=written,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )

    async def wait_idle(self, timeout: float | None = None) -> None:
        """Wait for every outstanding completion task (tests, shutdown)."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)

    async def shutdown(self) -> None:
        """Cancel outstanding completion tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled outstanding insight tasks", count=len(tasks))
