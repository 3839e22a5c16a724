"""
RequestContext Middleware - Adds request tracking to all requests.

Adds to request.state:
- request_id: Unique ID for request tracing
- ip_address: Client IP address (the rate limiter's client identity)

Also binds request_id to the structlog context so every log line emitted
while handling the request carries it, and echoes X-Request-ID.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from mhp.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request.state Namespace Convention:
    - request_id, ip_address: Set by RequestContextMiddleware
    - rate_limit_info: Set by rate limit dependencies
    """

    def __init__(
        self,
        app,
        trust_x_forwarded_for: bool = False,
        trusted_proxy_ips: list[str] | None = None,
    ):
        super().__init__(app)
        self.trust_x_forwarded_for = trust_x_forwarded_for
        self.trusted_proxy_ips = set(trusted_proxy_ips or [])

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        ip_address = self._extract_client_ip(request)
        request.state.ip_address = ip_address

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            logger.debug(
                "Request started",
                method=request.method,
                path=request.url.path,
                ip_address=ip_address,
            )
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response

    def _extract_client_ip(self, request: Request) -> str | None:
        """
        Extract client IP address with proxy spoofing protection.

        X-Forwarded-For is only honoured when trusting is enabled and the
        direct peer is a trusted proxy, so clients cannot pick their own
        rate limit identity.
        """
        direct_ip = request.client.host if request.client else None

        if not self.trust_x_forwarded_for:
            return direct_ip

        if direct_ip and direct_ip in self.trusted_proxy_ips:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                # "client, proxy1, proxy2" - first entry is the original client
                return forwarded_for.split(",")[0].strip()

        return direct_ip
