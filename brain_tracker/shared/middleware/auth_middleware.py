# brain_tracker/shared/middleware/auth_middleware.py

"""
Access token verification and device binding.

Every request whose path does not match one of the public patterns must
carry ``Authorization: Bearer <token>``. The token is verified (signature,
algorithm, issuer, audience, expiry) and its ``fp`` claim is compared with
the fingerprint of the current request. On success the claims are exposed
as ``request.state.claims``; any failure ends the request with the same
401 response.
"""

import logging
import re
from typing import Iterable, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from brain_tracker.adapters.configuration.config import settings
from brain_tracker.adapters.outbound.security.token_manager import TokenManager, token_manager
from brain_tracker.domain.exceptions import (
    BEARER_HEADERS,
    GENERIC_TOKEN_ERROR,
    BindingMismatchException,
    InvalidTokenException,
)
from brain_tracker.domain.services.auth_service import AuthService

# Configure logger
logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token of a well formed ``Bearer`` header, else None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        return None
    return parts[1]


def enforce_token_binding(claims: dict, request_fingerprint: Optional[str], require_fingerprint: bool) -> None:
    """
    Raises:
        BindingMismatchException: If the token's ``fp`` claim and the request
            fingerprint disagree, or one is missing while required
    """
    token_fingerprint = claims.get("fp")
    if AuthService.binding_holds(token_fingerprint, request_fingerprint, require_fingerprint):
        return
    both_present = (AuthService.fingerprint_present(token_fingerprint)
                    and AuthService.fingerprint_present(request_fingerprint))
    raise BindingMismatchException(reason="binding mismatch" if both_present else "fingerprint missing")


def unauthorized_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": GENERIC_TOKEN_ERROR, "code": "UNAUTHENTICATED"},
        headers=BEARER_HEADERS,
    )


class AsyncAccessTokenMiddleware(BaseHTTPMiddleware):
    """
    Verification middleware followed by the binding enforcer.
    """

    def __init__(
            self,
            app,
            verifier: TokenManager = token_manager,
            public_paths: Optional[Iterable[str]] = None,
            require_fingerprint: Optional[bool] = None,
    ):
        super().__init__(app)
        self.verifier = verifier
        patterns = settings.PUBLIC_PATH_PATTERNS if public_paths is None else public_paths
        self.public_paths: List[re.Pattern] = [re.compile(p) for p in patterns]
        self.require_fingerprint = (
            settings.REQUIRE_DEVICE_FINGERPRINT if require_fingerprint is None else require_fingerprint
        )

    def is_public(self, path: str) -> bool:
        return any(p.search(path) for p in self.public_paths)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if request.method == "OPTIONS" or self.is_public(path):
            return await call_next(request)

        client = request.client.host if request.client else "N/A"
        token = extract_bearer_token(request.headers.get("authorization"))
        if token is None:
            logger.info(f"Missing or malformed bearer token | Path: {path} | Client: {client}")
            return unauthorized_response()

        try:
            claims = await self.verifier.verify_access_token(token)
            enforce_token_binding(
                claims,
                getattr(request.state, "fingerprint", None),
                self.require_fingerprint,
            )
        except BindingMismatchException as exc:
            logger.warning(f"Token binding rejected: {exc.reason} | Path: {path} | Client: {client}")
            return unauthorized_response()
        except InvalidTokenException as exc:
            logger.info(f"Access token rejected: {exc.reason} | Path: {path} | Client: {client}")
            return unauthorized_response()

        request.state.claims = claims
        return await call_next(request)
