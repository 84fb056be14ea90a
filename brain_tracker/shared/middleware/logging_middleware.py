# brain_tracker/shared/middleware/logging_middleware.py

"""
Middleware for HTTP request logging.

Logs every request and response and tags both with a request id, taken
from ``X-Request-ID`` when the client sends one.
"""

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from brain_tracker.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request logging.
    Logs information about each received request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        # Less detail in production; query strings never carry tokens here
        if settings.ENVIRONMENT == "production":
            logger.info(f"[{request_id}] Request: {request.method} {request.url.path}")
        else:
            logger.info(
                f"[{request_id}] Request: {request.method} {request.url.path} | "
                f"Client: {request.client.host if request.client else 'N/A'}"
            )

        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        if settings.ENVIRONMENT == "production":
            logger.info(f"[{request_id}] Response: {response.status_code} for {request.method} {request.url.path}")
        else:
            logger.info(
                f"[{request_id}] Response: {response.status_code} for {request.method} {request.url.path} | "
                f"Time: {process_time:.4f}s"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
