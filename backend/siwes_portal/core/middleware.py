"""
SIWES Portal - HTTP Middleware
Request logging, security headers and body size limits
"""

import time
from typing import Callable, Set
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from siwes_portal.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


# Paths that should skip request logging
SKIP_LOGGING_PATHS: Set[str] = {
    "/health",
    "/favicon.ico",
    "/api/docs",
    "/api/openapi.json",
}

SLOW_REQUEST_MS = 1000


def should_skip_logging(path: str) -> bool:
    """Health checks, docs and static uploads are not logged"""
    return path in SKIP_LOGGING_PATHS or path.startswith("/uploads/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every API request with its status and duration.

    Sets the request id context variable used by the log formatters and
    echoes it back in the X-Request-ID header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        path = request.url.path
        skip_logging = should_skip_logging(path)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"{request.method} {path} - Exception ({duration_ms:.2f}ms): {type(exc).__name__}",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": request.method,
                    "http_path": path,
                    "duration_ms": duration_ms,
                }
            )
            raise
        finally:
            set_request_id("")
            set_user_id("")

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if not skip_logging:
            client_ip = request.client.host if request.client else "unknown"
            logger.log_request(
                request.method, path, response.status_code, duration_ms,
                client_ip=client_ip,
            )
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning(
                    f"Slow request: {request.method} {path} took {duration_ms:.2f}ms",
                    extra={"event_type": "slow_request", "http_path": path, "duration_ms": duration_ms}
                )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds standard security headers to all responses
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects requests whose declared body is larger than max_size
    """

    def __init__(self, app: ASGIApp, max_size: int = 10 * 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")

        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                f"Request body too large: {content_length} bytes (max: {self.max_size})",
                extra={
                    "event_type": "request_too_large",
                    "content_length": int(content_length),
                    "http_path": request.url.path,
                }
            )
            return JSONResponse(
                status_code=413,
                content={"error": f"Request body too large. Maximum size is {self.max_size // 1024 // 1024}MB"}
            )

        return await call_next(request)


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "should_skip_logging",
]
