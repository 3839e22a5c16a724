"""
Async client for the insight job API.

fetch_insights_job starts a job and polls it with exponential backoff until
the server reports a terminal status or the local deadline passes.
Cancelling the calling task stops polling only; the server still finishes
the job and later prunes it.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from mhp.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

INITIAL_POLL_DELAY_SECONDS = 0.65
POLL_BACKOFF_FACTOR = 1.35
MAX_POLL_DELAY_SECONDS = 2.4
DEFAULT_TIMEOUT_SECONDS = 90.0


class InsightsClientError(Exception):
    """The server rejected the request or reported a failed job."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InsightsTimeoutError(InsightsClientError):
    """The job did not finish before the local deadline."""


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return f"Request failed ({response.status_code})"


def next_poll_delay(delay: float) -> float:
    return min(MAX_POLL_DELAY_SECONDS, round(delay * POLL_BACKOFF_FACTOR, 3))


class InsightsClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        proxy_secret: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.http_client = http_client
        self.proxy_secret = proxy_secret
        self._sleep = sleep
        self._clock = clock

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.proxy_secret:
            headers["x-mhp-proxy-secret"] = self.proxy_secret
        return headers

    async def start_job(self, payload: dict[str, Any]) -> str:
        response = await self.http_client.post("/insights", json=payload or {}, headers=self._headers())
        if response.is_error:
            raise InsightsClientError(_error_message(response), response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        job_id = data.get("jobId") if isinstance(data, dict) else None
        if not isinstance(job_id, str) or not job_id.strip():
            raise InsightsClientError("Backend did not return a jobId", response.status_code)
        return job_id.strip()

    async def fetch_insights_job(
        self,
        payload: dict[str, Any],
        timeout_s: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> dict[str, Any]:
        """
        Start a job and wait for its result.

        Raises:
            InsightsClientError: Non-2xx from the server (its message is kept)
            InsightsTimeoutError: Still pending when the deadline passed
        """
        job_id = await self.start_job(payload)
        deadline = self._clock() + timeout_s
        delay = INITIAL_POLL_DELAY_SECONDS

        while self._clock() < deadline:
            response = await self.http_client.get(
                "/insights", params={"jobId": job_id}, headers=self._headers()
            )

            if response.status_code == 202:
                await self._sleep(delay)
                delay = next_poll_delay(delay)
                continue

            if response.is_error:
                raise InsightsClientError(_error_message(response), response.status_code)

            try:
                return response.json()
            except ValueError as e:
                raise InsightsClientError(
                    "Backend returned an invalid response", response.status_code
                ) from e

        logger.warning("Timed out waiting for insights", job_id=job_id, timeout_s=timeout_s)
        raise InsightsTimeoutError("Timed out waiting for AI insights.")
