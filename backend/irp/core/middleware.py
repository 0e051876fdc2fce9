"""
IRP API - HTTP Middleware
"""

import time
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from irp.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


# Probes and docs are too chatty to log
QUIET_PATHS = frozenset({
    "/health",
    "/api/v1/health",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
})

SLOW_REQUEST_MS = 1000

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a correlation id and log its outcome.

    An incoming X-Request-ID is reused. The id and the elapsed time are
    echoed back as X-Request-ID and X-Response-Time. The account id is
    picked up from ``request.state`` after the identity verifier ran.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.log_error_with_context(
                exc, f"{request.method} {path}",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        finally:
            set_user_id("")

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        if path not in QUIET_PATHS:
            logger.log_request(
                request.method, path, response.status_code, duration_ms,
                client_ip=request.client.host if request.client else "unknown",
                account_id=getattr(request.state, "user_id", None),
            )
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning(
                    f"Slow request: {request.method} {path} took {duration_ms:.2f}ms",
                    extra={"event_type": "slow_request", "http_path": path, "duration_ms": duration_ms}
                )

        set_request_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Standard hardening headers on every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response
