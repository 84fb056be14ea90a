# brain_tracker/shared/middleware/exception_middleware.py

"""
Middleware for centralized exception handling.

Intercepts exceptions that escape the routes and the inner middlewares
and formats an error response. Outside development the body never
carries exception text.
"""

import time
import logging
import traceback
from typing import Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from jose.exceptions import JWTError

from brain_tracker.domain.exceptions import GENERIC_TOKEN_ERROR, BEARER_HEADERS, TrackerException
from brain_tracker.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)


def _client(request: Request) -> str:
    return request.client.host if request.client else "N/A"


class AsyncExceptionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized exception handling.
    Captures specific exceptions and formats the response accordingly.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response

        except TrackerException as exc:
            # Raised outside a route (e.g. from a middleware)
            logger.warning(
                f"Application exception: {exc.detail} | Code: {exc.internal_code} | "
                f"Path: {request.url.path}"
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "code": exc.internal_code},
                headers=exc.headers,
            )

        except SQLAlchemyError as exc:
            # Storage failures are not retried here
            logger.error(
                f"Database error: Type={type(exc).__name__} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            detail = "Internal database error" if settings.ENVIRONMENT == "production" else str(exc)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": detail, "code": "DATABASE_ERROR"}
            )

        except JWTError as exc:
            logger.warning(
                f"Authentication error: Type={type(exc).__name__} | "
                f"Path: {request.url.path} | Client: {_client(request)}"
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": GENERIC_TOKEN_ERROR, "code": "INVALID_TOKEN"},
                headers=BEARER_HEADERS,
            )

        except Exception as exc:
            # Unhandled exceptions
            if settings.ENVIRONMENT == "development":
                error_message = str(exc)
                logger.exception(
                    f"Unhandled exception: {str(exc)} | "
                    f"Path: {request.url.path} | Client: {_client(request)}\n"
                    f"Traceback: {traceback.format_exc()}"
                )
            else:
                error_message = "Internal server error"
                logger.exception(
                    f"Unhandled exception: Type={type(exc).__name__} | "
                    f"Path: {request.url.path} | Client: {_client(request)}"
                )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": error_message, "code": "INTERNAL_SERVER_ERROR"}
            )
