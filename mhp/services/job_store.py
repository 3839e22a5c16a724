"""
Job Store - in-process registry of insight jobs.

The store is the only synchronization point between the request handlers
that create and poll jobs and the background tasks that finish them:
- create_job inserts a pending record before any job id leaves the server
- complete_job / fail_job swap in a terminal record at most once per job
- prune_expired drops jobs older than the TTL (or structurally invalid)

Records are immutable, and every read or swap happens under one lock, so
pollers observe either the pending record or a fully written terminal one.
"""

import threading
import time
import uuid
from collections.abc import Callable

from mhp.infrastructure.observability.logging import get_logger
from mhp.models.domain.insights_domain import JOB_STATUS_PENDING, InsightJob

logger = get_logger(__name__)

DEFAULT_JOB_TTL_SECONDS = 15 * 60


class JobStore:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_JOB_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] | None = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._jobs: dict[str, InsightJob] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._jobs)

    def create_job(self, day_key: str, profile_id: str | None = None, model: str | None = None) -> InsightJob:
        """Insert a new pending job and return it."""
        self.prune_expired()

        with self._lock:
            job_id = self._id_factory()
            while job_id in self._jobs:
                job_id = self._id_factory()

            job = InsightJob(
                job_id=job_id,
                status=JOB_STATUS_PENDING,
                created_at=self._clock(),
                day_key=day_key,
                profile_id=profile_id,
                model=model,
            )
            self._jobs[job_id] = job

        logger.info("Insight job created", job_id=job_id, day_key=day_key)
        return job

    def get_job(self, job_id: str) -> InsightJob | None:
        """Return the job, or None if unknown or past its TTL."""
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            return None
        if job.age_seconds(self._clock()) > self.ttl_seconds:
            return None
        return job

    def complete_job(self, job_id: str, insights: dict[str, dict[str, str]]) -> bool:
        """Move a pending job to `done`. Returns False if it was not pending."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return False
            self._jobs[job_id] = job.as_done(insights, completed_at=self._clock())
        return True

    def fail_job(self, job_id: str, message: str, raw: str | None = None) -> bool:
        """Move a pending job to `error`. Returns False if it was not pending."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return False
            self._jobs[job_id] = job.as_error(message, raw, completed_at=self._clock())
        return True

    def prune_expired(self, now: float | None = None) -> int:
        """Delete jobs past the TTL and malformed records. Returns the count removed."""
        now = self._clock() if now is None else now
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if not isinstance(job, InsightJob)
                or not job.is_well_formed()
                or job.age_seconds(now) > self.ttl_seconds
            ]
            for job_id in expired:
                del self._jobs[job_id]

        if expired:
            logger.info("Pruned expired insight jobs", removed=len(expired), remaining=len(self._jobs))
        return len(expired)
