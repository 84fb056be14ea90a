# brain_tracker/shared/middleware/security_headers_middleware.py

"""
Middleware for adding HTTP security headers.
"""

import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from brain_tracker.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")


class AsyncSecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to API responses.

    Token responses must never be cached, so every API route gets
    ``Cache-Control: no-store``.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if not path.startswith(DOCS_PATHS):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "img-src 'self' data: https:; "
                "style-src 'self' 'unsafe-inline'; "
                "script-src 'self'; "
                "object-src 'none'; "
                "frame-ancestors 'none'"
            )
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

        return response
