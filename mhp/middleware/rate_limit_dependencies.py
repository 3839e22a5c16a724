"""
Rate Limit Dependencies - fixed window limits for the insight routes.

Usage:
    @router.post("/insights")
    async def start_insights(
        request: Request,
        _rate: None = Depends(rate_limit_insights),
    ):
        pass

Every request passes the "any insights request" limiter and then the
limiter for its method. The first limiter that rejects wins; its info is
stored on request.state.rate_limit_info for RateLimitHeadersMiddleware.
"""

from fastapi import Request

from mhp.errors import InsightsRateLimitError
from mhp.infrastructure.observability.logging import get_logger
from mhp.middleware.rate_limiter import InsightsRateLimiters, RateLimiter

logger = get_logger(__name__)


def get_rate_limiters(request: Request) -> InsightsRateLimiters:
    return request.app.state.rate_limiters


def _client_identity(request: Request) -> str:
    ip_address = getattr(request.state, "ip_address", None)
    if ip_address:
        return ip_address
    return request.client.host if request.client else "unknown"


def _enforce(request: Request, limiters: list[RateLimiter]) -> None:
    client_id = _client_identity(request)

    for limiter in limiters:
        allowed, info = limiter.check_rate_limit(client_id)
        request.state.rate_limit_info = info

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                route_class=limiter.route_class,
                client=client_id,
                limit=info["limit"],
                retry_after=info["retry_after"],
                path=request.url.path,
            )
            raise InsightsRateLimitError(
                f"Too many requests. Try again in {info['retry_after']} seconds.",
                retry_after=info["retry_after"],
            )


async def rate_limit_insights(request: Request) -> None:
    """Apply the insight limiters that match the request method."""
    rate_limiters = get_rate_limiters(request)
    if not rate_limiters.enabled:
        return
    _enforce(request, rate_limiters.limiters_for(request.method))


async def rate_limit_stress(request: Request) -> None:
    """Apply the /stress limiter. Does not count against the insight limits."""
    rate_limiters = get_rate_limiters(request)
    if not rate_limiters.enabled:
        return
    _enforce(request, [rate_limiters.stress])
