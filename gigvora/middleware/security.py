"""Security middleware: HTTP headers and request body size enforcement.

Both are pure ASGI middleware so streamed responses pass through untouched.
"""

import json

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

logger = structlog.get_logger()


class SecurityHeadersMiddleware:
    """Add security headers to every HTTP response.

    Responses under ``private_prefixes`` (wallet balances, disputes, compliance
    documents) also get ``Cache-Control: no-store`` unless the handler set one.
    """

    HEADERS = (
        ("x-content-type-options", "nosniff"),
        ("x-frame-options", "DENY"),
        ("x-xss-protection", "0"),
        ("referrer-policy", "no-referrer"),
        ("permissions-policy", "camera=(), microphone=(), geolocation=()"),
    )
    HSTS = ("strict-transport-security", "max-age=63072000; includeSubDomains")
    PRIVATE_PREFIXES = ("/v1/wallet", "/v1/users", "/v1/freelancer", "/v1/compliance")

    def __init__(
        self,
        app: ASGIApp,
        is_production: bool = False,
        private_prefixes: tuple[str, ...] = PRIVATE_PREFIXES,
    ) -> None:
        self.app = app
        self.headers = list(self.HEADERS) + ([self.HSTS] if is_production else [])
        self.private_prefixes = private_prefixes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        private = scope["path"].startswith(self.private_prefixes)

        async def send_with_headers(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in self.headers:
                    headers.append(name, value)
                headers["server"] = "gigvora"
                if private and "cache-control" not in headers:
                    headers["cache-control"] = "no-store"
            await send(message)

        await self.app(scope, receive, send_with_headers)


class RequestBodySizeLimitMiddleware:
    """Reject requests whose Content-Length exceeds ``max_bytes`` with a 413 envelope."""

    def __init__(self, app: ASGIApp, max_bytes: int = 26_214_400) -> None:  # 25 MB
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        raw_cl = headers.get(b"content-length")
        if raw_cl and raw_cl.isdigit() and int(raw_cl) > self.max_bytes:
            logger.warning("request_body_too_large", path=scope.get("path"), content_length=int(raw_cl))
            body = json.dumps({
                "error": "payload_too_large",
                "message": f"Request body exceeds {self.max_bytes // (1024 * 1024)} MB.",
                "detail": None,
                "request_id": headers.get(b"x-request-id", b"unknown").decode(),
            }).encode()
            await send(
                {
                    "type": "http.response.start",
                    "status": 413,
                    "headers": [
                        (b"content-type", b"application/json"),
                        (b"content-length", str(len(body)).encode()),
                    ],
                }
            )
            await send({"type": "http.response.body", "body": body, "more_body": False})
            return

        await self.app(scope, receive, send)
