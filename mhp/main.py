"""
Health insights backend: app factory and lifecycle.
"""

import asyncio
import contextlib
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware

from mhp.config import Settings, settings
from mhp.errors import InsightsError, insights_error_handler
from mhp.infrastructure.observability.logging import get_logger, log_request, setup_logging
from mhp.jobs.job_prune_job import JobPruneJob, start_job_prune_scheduler
from mhp.middleware.rate_limit_headers import RateLimitHeadersMiddleware
from mhp.middleware.rate_limiter import InsightsRateLimiters
from mhp.middleware.request_context import RequestContextMiddleware
from mhp.routes import health, insights, stress
from mhp.services.insights_llm_service import InsightsLLMService
from mhp.services.insights_orchestrator import InsightsOrchestrator
from mhp.services.job_store import JobStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the prune scheduler; cancel it and in-flight jobs on shutdown."""
    app_settings: Settings = app.state.settings
    logger.info(
        "Application starting",
        environment=app_settings.environment,
        openai_configured=app_settings.openai_configured(),
        model=app_settings.OPENAI_MODEL,
    )

    prune_task = asyncio.create_task(
        start_job_prune_scheduler(
            JobPruneJob(app.state.job_store, app.state.rate_limiters),
            interval_seconds=app_settings.INSIGHTS_JOB_PRUNE_INTERVAL_SECONDS,
        ),
        name="job-prune-scheduler",
    )

    yield

    logger.info("Application shutting down")
    prune_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await prune_task
    await app.state.orchestrator.shutdown()


def create_app(
    app_settings: Settings | None = None,
    llm_service: InsightsLLMService | None = None,
) -> FastAPI:
    """Build the FastAPI app with its stores wired from `app_settings`."""
    app_settings = app_settings or settings

    app = FastAPI(
        title="My Health Profile Insights",
        description="Asynchronous AI insight jobs and baseline-relative stress scoring",
        version="0.1.0",
        lifespan=lifespan,
    )

    job_store = JobStore(ttl_seconds=app_settings.INSIGHTS_JOB_TTL_SECONDS)
    rate_limiters = InsightsRateLimiters(
        app_settings.get_rate_limits(),
        max_buckets=app_settings.RATE_LIMIT_MAX_BUCKETS,
        enabled=app_settings.RATE_LIMIT_ENABLED,
    )
    llm_service = llm_service or InsightsLLMService(
        api_key=app_settings.OPENAI_API_KEY,
        model=app_settings.OPENAI_MODEL,
        timeout_seconds=app_settings.OPENAI_TIMEOUT_SECONDS,
        max_retries=app_settings.OPENAI_MAX_RETRIES,
        max_output_tokens=app_settings.OPENAI_MAX_OUTPUT_TOKENS,
    )

    app.state.settings = app_settings
    app.state.job_store = job_store
    app.state.rate_limiters = rate_limiters
    app.state.orchestrator = InsightsOrchestrator(
        job_store,
        llm_service,
        max_days=app_settings.INSIGHTS_MAX_DAYS,
        default_time_zone=app_settings.INSIGHTS_DEFAULT_TIME_ZONE,
        raw_preview_chars=app_settings.INSIGHTS_RAW_PREVIEW_CHARS,
    )

    app.add_exception_handler(InsightsError, insights_error_handler)

    # Added last = outermost
    app.add_middleware(RateLimitHeadersMiddleware)
    app.add_middleware(
        RequestContextMiddleware,
        trust_x_forwarded_for=app_settings.TRUST_X_FORWARDED_FOR,
        trusted_proxy_ips=app_settings.TRUSTED_PROXY_IPS,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins(),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "x-mhp-proxy-secret"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.time() - start_time) * 1000, 2),
            request_id=getattr(request.state, "request_id", None),
        )
        return response

    app.include_router(health.router)
    app.include_router(insights.router)
    app.include_router(stress.router)

    return app


setup_logging(log_level="DEBUG" if settings.debug else "INFO")
app = create_app(settings)


def run() -> None:
    """Console entrypoint."""
    import uvicorn

    uvicorn.run("mhp.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
