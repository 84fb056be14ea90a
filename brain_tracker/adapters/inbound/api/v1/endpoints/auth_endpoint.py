# brain_tracker/adapters/inbound/api/v1/endpoints/auth_endpoint.py

import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Request, status

from brain_tracker.application.use_cases.auth_use_cases import AsyncAuthService
from brain_tracker.adapters.inbound.api.deps import (
    get_auth_service,
    get_current_claims,
    get_request_fingerprint,
)
from brain_tracker.domain.models.refresh_token_domain_model import METADATA_MAX_VALUE_LENGTH
from brain_tracker.application.dtos.auth_dto import (
    ClaimsOutput,
    LoginRequest,
    LogoutRequest,
    MessageOutput,
    RefreshTokenRequest,
    TokenPair,
)

logger = logging.getLogger(__name__)
router = APIRouter()

INVALID_TOKEN_RESPONSE = {
    "description": (
        "Token rejected. Unknown, already used, wrong-device and expired refresh "
        "tokens all answer 401 (earlier releases answered 400); a malformed "
        "token answers 400."
    ),
    "content": {
        "application/json": {
            "example": {"detail": "Invalid or expired token.", "code": "INVALID_TOKEN"}
        }
    }
}


def client_metadata(request: Request) -> Dict[str, str]:
    """Client details kept on the refresh record across rotations."""
    user_agent = request.headers.get("user-agent", "").strip()
    return {"user_agent": user_agent[:METADATA_MAX_VALUE_LENGTH]} if user_agent else {}


@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login - Generates a token pair",
    description=(
            "Authenticates a user (email/password) and returns an access token "
            "bound to the calling device plus a single-use refresh token."
    ),
    responses={
        200: {
            "description": "Authenticated",
            "content": {
                "application/json": {
                    "example": {
                        "accessToken": "eyJhbGciOiJSUzI1NiIsInR5cCI6IkpXVCJ9...",
                        "refreshToken": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
                        "tokenType": "Bearer",
                        "expiresAt": "2024-01-01T00:15:00Z"
                    }
                }
            }
        },
        401: {
            "description": "Invalid credentials",
            "content": {
                "application/json": {
                    "example": {"detail": "Invalid credentials", "code": "INVALID_CREDENTIALS"}
                }
            }
        }
    }
)
async def login_user(
        credentials: LoginRequest,
        service: AsyncAuthService = Depends(get_auth_service),
        fingerprint: Optional[str] = Depends(get_request_fingerprint),
        metadata: Dict[str, str] = Depends(client_metadata),
):
    return await service.login_user(credentials, fingerprint, metadata)


@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh - Rotates the refresh token",
    description=(
            "Exchanges a refresh token for a new pair. The presented token is "
            "consumed and cannot be used again. It must be presented from the "
            "device it was issued to."
    ),
    responses={401: INVALID_TOKEN_RESPONSE},
)
async def refresh_token(
        refresh_data: RefreshTokenRequest,
        service: AsyncAuthService = Depends(get_auth_service),
        fingerprint: Optional[str] = Depends(get_request_fingerprint),
):
    return await service.rotate_refresh_token(refresh_data.refresh_token, fingerprint)


@router.post(
    "/logout",
    response_model=MessageOutput,
    status_code=status.HTTP_200_OK,
    summary="Logout - Invalidates a refresh token",
    description=(
            "Consumes the given refresh token. Access tokens already issued stay "
            "valid until they expire."
    ),
    responses={401: INVALID_TOKEN_RESPONSE},
)
async def logout_user(
        logout_data: LogoutRequest,
        service: AsyncAuthService = Depends(get_auth_service),
):
    await service.logout(logout_data.refresh_token)
    return MessageOutput(message="Logged out")


@router.get(
    "/me",
    response_model=ClaimsOutput,
    summary="Me - Current token identity",
    description="Returns the user id and device fingerprint of the verified access token.",
    responses={401: INVALID_TOKEN_RESPONSE},
)
async def read_claims(claims: Dict[str, Any] = Depends(get_current_claims)):
    return ClaimsOutput(user_id=claims["sub"], fingerprint=claims.get("fp"))
