"""
Forwarding layer for the insight routes.

Deployed next to the static frontend: relays GET/POST /insights to the
backend origin unchanged except for hop-by-hop headers, and injects the
shared secret so the backend can stay closed to direct traffic.
"""

import httpx
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from mhp.auth.verify import PROXY_SECRET_HEADER
from mhp.config import Settings, settings
from mhp.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DROPPED_HEADERS = {"host", "connection", "content-length"}
BODY_METHODS = {"POST", "PUT", "PATCH"}


def pick_header(headers, key: str) -> str:
    return headers.get(key.lower(), "") or ""


def filter_forward_headers(headers) -> dict[str, str]:
    return {
        key.lower(): value for key, value in headers.items() if key.lower() not in DROPPED_HEADERS
    }


class InsightsForwarder:
    def __init__(
        self,
        backend_origin: str,
        proxy_secret: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float = 30.0,
    ):
        self.backend_origin = backend_origin.rstrip("/")
        self.proxy_secret = (proxy_secret or "").strip()
        self.transport = transport
        self.timeout_seconds = timeout_seconds

    def build_headers(self, incoming) -> dict[str, str]:
        headers = filter_forward_headers(incoming)
        headers.setdefault("accept", "application/json")
        if self.proxy_secret:
            headers[PROXY_SECRET_HEADER] = self.proxy_secret

        client_ip = pick_header(incoming, "x-nf-client-connection-ip") or pick_header(
            incoming, "x-forwarded-for"
        )
        if client_ip:
            headers["x-forwarded-for"] = client_ip
        return headers

    async def forward(self, request: Request) -> Response:
        method = request.method.upper()
        url = f"{self.backend_origin}/insights"
        if request.url.query:
            url = f"{url}?{request.url.query}"

        body = await request.body() if method in BODY_METHODS else None

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout_seconds) as client:
                upstream = await client.request(
                    method, url, headers=self.build_headers(request.headers), content=body
                )
        except httpx.HTTPError as e:
            logger.error("Backend unreachable", url=url, error=str(e), error_type=type(e).__name__)
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content={"ok": False, "error": "Insights backend unavailable"},
            )

        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers={
                "Content-Type": upstream.headers.get("content-type", "application/json"),
                "Cache-Control": "no-store",
            },
        )


def create_proxy_app(
    app_settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    app_settings = app_settings or settings
    if not app_settings.MHP_BACKEND_ORIGIN:
        raise ValueError("MHP_BACKEND_ORIGIN must be set for the forwarding layer")

    forwarder = InsightsForwarder(
        app_settings.MHP_BACKEND_ORIGIN,
        proxy_secret=app_settings.MHP_PROXY_SECRET,
        transport=transport,
    )
    app = FastAPI(title="My Health Profile Insights Proxy", version="0.1.0")

    @app.options("/insights")
    async def preflight():
        return Response(
            status_code=status.HTTP_204_NO_CONTENT,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type, Accept",
            },
        )

    @app.api_route("/insights", methods=["GET", "POST"])
    async def relay(request: Request):
        return await forwarder.forward(request)

    return app


def run() -> None:
    """Console entrypoint for the forwarding layer."""
    import uvicorn

    uvicorn.run(
        "mhp.proxy.app:create_proxy_app", factory=True, host="0.0.0.0", port=settings.PROXY_PORT
    )


if __name__ == "__main__":
    run()
