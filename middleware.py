import logging
import time

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

access_logger = logging.getLogger("access")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    # uploaded pictures are loaded by a frontend on another origin
    "Cross-Origin-Resource-Policy": "cross-origin",
}


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Write one access log line per request"""

    async def dispatch(self, request: Request, call_next):
        started = time.strftime("%d/%b/%Y:%H:%M:%S %z")
        response = await call_next(request)

        # Common Log Format
        host = request.client.host if request.client else "-"
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        length = response.headers.get("content-length", "-")
        access_logger.info(
            '%s - - [%s] "%s %s HTTP/%s" %s %s',
            host, started, request.method, path,
            request.scope.get("http_version", "1.1"), response.status_code, length
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class BodySizeLimitMiddleware:
    """
    Reject request bodies over the limit: up front by Content-Length, and
    while reading for bodies sent without one (chunked uploads).
    """

    def __init__(self, app: ASGIApp, max_body_mb: int = 30):
        self.app = app
        self.max_bytes = max_body_mb * 1024 * 1024

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            response = JSONResponse(status_code=413, content={"message": "Request body too large"})
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise HTTPException(status_code=413, detail="Request body too large")
            return message

        await self.app(scope, limited_receive, send)
