"""
Error taxonomy for the insights API.

Every error raised at the HTTP boundary derives from InsightsError and is
rendered as {"ok": false, "error": "..."} by the handler registered in
main.create_app. InsightsUpstreamError never reaches that handler; the
orchestrator records it on the job instead.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from mhp.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class InsightsError(Exception):
    """Base exception for errors reported synchronously to the client."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers


class InsightsValidationError(InsightsError):
    """Malformed or missing request fields. No job is created."""

    status_code = status.HTTP_400_BAD_REQUEST


class InsightsAuthError(InsightsError):
    """Missing or mismatched shared secret (or no secret in production)."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InsightsRateLimitError(InsightsError):
    """Request exceeded a fixed-window limit."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, retry_after: int):
        super().__init__(message, headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after


class InsightsNotFoundError(InsightsError):
    """Unknown or expired job id."""

    status_code = status.HTTP_404_NOT_FOUND


class InsightsUpstreamError(Exception):
    """The generation call failed or returned an unusable payload."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


async def insights_error_handler(request: Request, exc: InsightsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request rejected", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.message},
        headers=exc.headers,
    )
