"""HTTP middleware: security headers and development request logging."""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .settings import ENVIRONMENT, is_development

logger = logging.getLogger(__name__)

# Paths too noisy to log on every hit
QUIET_PATHS = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log one line per request with method, path, status, and duration.

    Installed only in development.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if path not in QUIET_PATHS:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{request.method} {path} {response.status_code} {elapsed_ms:.1f}ms"
            )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Uploaded images are served cross-origin by a separate static host, so the
    image and resource policies are relaxed accordingly.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cross-Origin-Resource-Policy"] = "cross-origin"

        # HSTS - Force HTTPS in production
        if ENVIRONMENT == "production" or request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        csp_directives = [
            "default-src 'self'",
            "img-src 'self' data: blob: *",
            "frame-ancestors 'none'",
            "base-uri 'self'",
        ]
        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        return response


def install_middleware(app) -> None:
    app.add_middleware(SecurityHeadersMiddleware)
    if is_development():
        app.add_middleware(RequestLoggingMiddleware)
