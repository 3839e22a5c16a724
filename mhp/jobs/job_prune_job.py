"""
Job Prune Background Job - bounds in-memory state.

Runs every INSIGHTS_JOB_PRUNE_INTERVAL_SECONDS to:
1. Delete insight jobs older than the TTL (orphaned results included)
2. Drop rate limit buckets from past windows

Design:
- Never fails (resilient)
- Runs as an asyncio task started in the app lifespan

Usage:
    import asyncio
    from mhp.jobs.job_prune_job import JobPruneJob, start_job_prune_scheduler

    job = JobPruneJob(job_store, rate_limiters)
    task = asyncio.create_task(start_job_prune_scheduler(job, interval_seconds=60))
"""

import asyncio

from mhp.infrastructure.observability.logging import get_logger
from mhp.middleware.rate_limiter import InsightsRateLimiters
from mhp.services.job_store import JobStore

logger = get_logger(__name__)


class JobPruneJob:
    def __init__(self, job_store: JobStore, rate_limiters: InsightsRateLimiters | None = None):
        self.job_store = job_store
        self.rate_limiters = rate_limiters

    def run_once(self) -> dict:
        """
        Run one pruning pass.

        Returns:
            dict: {"success": bool, "pruned_jobs": int, "pruned_buckets": int, "errors": list}
        """
        result = {"success": True, "pruned_jobs": 0, "pruned_buckets": 0, "errors": []}

        try:
            result["pruned_jobs"] = self.job_store.prune_expired()
        except Exception as e:
            logger.error("Failed to prune insight jobs", error=str(e))
            result["errors"].append(f"Failed to prune insight jobs: {e}")

        if self.rate_limiters is not None:
            try:
                for limiter in self.rate_limiters.all_limiters():
                    result["pruned_buckets"] += limiter.prune()
            except Exception as e:
                logger.error("Failed to prune rate limit buckets", error=str(e))
                result["errors"].append(f"Failed to prune rate limit buckets: {e}")

        result["success"] = not result["errors"]
        if result["pruned_jobs"] or result["pruned_buckets"] or result["errors"]:
            logger.info("Prune job completed", result=result)
        return result


async def start_job_prune_scheduler(job: JobPruneJob, interval_seconds: float = 60.0) -> None:
    """Run `job` forever, every `interval_seconds`. Stops when cancelled."""
    logger.info("Starting job prune scheduler", interval_seconds=interval_seconds)

    while True:
        try:
            job.run_once()
        except Exception as e:
            logger.error("Job prune scheduler error", error=str(e))

        await asyncio.sleep(interval_seconds)
