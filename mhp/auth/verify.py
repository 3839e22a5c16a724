"""
verify.py
---------
Purpose:
    Shared-secret check between the forwarding layer and this backend.

Notes:
    - The forwarding layer sends the secret in `x-mhp-proxy-secret`.
    - No secret configured: open in development, fail closed (500) in
      production.
    - Provides `proxy_secret_dependency` for the insight routes.
"""

import hmac

from fastapi import Request, status

from mhp.errors import InsightsAuthError
from mhp.infrastructure.observability.logging import get_logger

PROXY_SECRET_HEADER = "x-mhp-proxy-secret"

logger = get_logger(__name__)


def verify_proxy_secret(provided: str | None, expected: str | None, production: bool) -> None:
    expected = (expected or "").strip()
    if not expected:
        if production:
            logger.error("Proxy secret not configured in production")
            raise InsightsAuthError(
                "Server misconfigured: proxy secret is required",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return

    provided = (provided or "").strip()
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Proxy secret rejected", provided=bool(provided))
        raise InsightsAuthError("Unauthorized")


async def proxy_secret_dependency(request: Request) -> None:
    settings = request.app.state.settings
    verify_proxy_secret(
        request.headers.get(PROXY_SECRET_HEADER),
        settings.MHP_PROXY_SECRET,
        settings.is_production(),
    )
