# brain_tracker/domain/exceptions.py

"""
Application exceptions.

Every exception here extends FastAPI's HTTPException so that routes and
dependencies can raise it directly, while services keep a stable
``internal_code`` for logging. Authentication failures share one generic
client message on purpose; the specific reason only goes to the logs.
"""

from fastapi import HTTPException, status
from typing import Any, Dict, Optional

GENERIC_TOKEN_ERROR = "Invalid or expired token."
BEARER_HEADERS = {"WWW-Authenticate": "Bearer"}


class TrackerException(HTTPException):
    """
    Base exception for the application.
    Extends FastAPI's HTTPException with an internal code.
    """

    def __init__(
            self,
            status_code: int,
            detail: Any = None,
            headers: Optional[Dict[str, Any]] = None,
            internal_code: Optional[str] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.internal_code = internal_code


class ResourceNotFoundException(TrackerException):
    """Resource not found."""

    def __init__(self, detail: str = "Resource not found", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{detail}{resource_info}",
            internal_code="RESOURCE_NOT_FOUND"
        )


class ResourceAlreadyExistsException(TrackerException):
    """Resource already exists."""

    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            internal_code="RESOURCE_ALREADY_EXISTS"
        )


class InvalidCredentialsException(TrackerException):
    """Wrong password or unknown identity."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=BEARER_HEADERS,
            internal_code="INVALID_CREDENTIALS"
        )


class InvalidTokenException(TrackerException):
    """
    Token rejected.

    ``reason`` is kept for logs only: not found, consumed, wrong device,
    bad signature, wrong issuer... all look the same to the client.
    """

    def __init__(self, reason: str = "invalid", internal_code: str = "INVALID_TOKEN"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=GENERIC_TOKEN_ERROR,
            headers=BEARER_HEADERS,
            internal_code=internal_code
        )
        self.reason = reason


class TokenExpiredException(InvalidTokenException):
    """Refresh token found and owned by the caller, but past its expiry."""

    def __init__(self):
        super().__init__(reason="expired", internal_code="TOKEN_EXPIRED")
        self.detail = "Refresh token expired."


class BindingMismatchException(InvalidTokenException):
    """Access token fingerprint differs from the request fingerprint."""

    def __init__(self, reason: str = "binding mismatch"):
        super().__init__(reason=reason, internal_code="BINDING_MISMATCH")


class InvalidInputException(TrackerException):
    """Malformed input."""

    def __init__(self, detail: str = "Invalid input", fields: Optional[Dict[str, str]] = None):
        field_errors = ""
        if fields:
            field_errors = ": " + ", ".join([f"{field}: {error}" for field, error in fields.items()])

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{detail}{field_errors}",
            internal_code="INVALID_INPUT"
        )


class DatabaseOperationException(TrackerException):
    """Persistence layer failure."""

    def __init__(self, detail: str = "Error executing database operation",
                 original_error: Optional[Exception] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            internal_code="DATABASE_OPERATION_ERROR"
        )
        self.original_error = original_error


class KeyMaterialException(TrackerException):
    """Signing or verification key could not be loaded or resolved."""

    def __init__(self, detail: str = "Key material unavailable"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            internal_code="KEY_MATERIAL_ERROR"
        )
