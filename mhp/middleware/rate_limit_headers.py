"""
Rate Limit Headers Middleware - Add rate limit info to responses.

Headers added:
- X-RateLimit-Limit: Maximum requests allowed in the window
- X-RateLimit-Remaining: Remaining requests in current window
- X-RateLimit-Reset: Epoch seconds when the current window ends
- Retry-After: Seconds to wait before retrying (if rate limited)

Reads rate_limit_info from request.state (set by rate limit dependencies).
Responses without rate_limit_info are left untouched.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Add rate limit headers to all responses."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        rate_limit_info = getattr(request.state, "rate_limit_info", None)

        if rate_limit_info:
            if "limit" in rate_limit_info:
                response.headers["X-RateLimit-Limit"] = str(rate_limit_info["limit"])

            if "remaining" in rate_limit_info:
                response.headers["X-RateLimit-Remaining"] = str(rate_limit_info["remaining"])

            if not rate_limit_info.get("allowed", True) and "retry_after" in rate_limit_info:
                response.headers["Retry-After"] = str(rate_limit_info["retry_after"])

            if "retry_after" in rate_limit_info:
                reset_timestamp = int(time.time()) + rate_limit_info["retry_after"]
                response.headers["X-RateLimit-Reset"] = str(reset_timestamp)

        return response
