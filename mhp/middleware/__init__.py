"""
Middleware components for request processing.

This package contains middleware for:
- Request context (request ID, client IP)
- Rate limiting (fixed window counters per route class)
"""

from mhp.middleware.rate_limit_dependencies import rate_limit_insights, rate_limit_stress
from mhp.middleware.rate_limit_headers import RateLimitHeadersMiddleware
from mhp.middleware.rate_limiter import InsightsRateLimiters, RateLimiter
from mhp.middleware.request_context import RequestContextMiddleware

__all__ = [
    "RequestContextMiddleware",
    "RateLimitHeadersMiddleware",
    "RateLimiter",
    "InsightsRateLimiters",
    "rate_limit_insights",
    "rate_limit_stress",
]
