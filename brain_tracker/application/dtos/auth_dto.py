# brain_tracker/application/dtos/auth_dto.py

"""
Schemas for the token endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from brain_tracker.application.dtos.base_dto import CustomBaseModel
from brain_tracker.domain.services.auth_service import AuthService
from brain_tracker.shared.utils.input_validation import InputValidator


def _check_refresh_token(v: str) -> str:
    if not AuthService.is_well_formed_refresh_token(v):
        raise ValueError("Invalid refresh token format")
    return v


class LoginRequest(CustomBaseModel):
    """Email/password credentials with an optional client fingerprint."""
    email: EmailStr = Field(..., description="User email.")
    password: str = Field(..., min_length=1, description="User password.")
    fingerprint: Optional[str] = Field(
        None, description="Device fingerprint, used when the request carries none."
    )

    @field_validator("email")
    def validate_email_security(cls, v):
        is_valid, error_msg = InputValidator.validate_email(v)
        if not is_valid:
            raise ValueError(error_msg)
        return v.lower()

    @field_validator("fingerprint")
    def validate_fingerprint(cls, v):
        if v is None:
            return v
        is_valid, error_msg = InputValidator.validate_fingerprint(v)
        if not is_valid:
            raise ValueError(error_msg)
        return v


class RefreshTokenRequest(CustomBaseModel):
    """Body of the refresh endpoint."""
    refresh_token: str = Field(..., description="Raw refresh token, 64 hex characters.")

    @field_validator("refresh_token")
    def validate_refresh_token(cls, v):
        return _check_refresh_token(v)


class LogoutRequest(CustomBaseModel):
    """Body of the logout endpoint."""
    refresh_token: str = Field(..., description="Raw refresh token to invalidate.")

    @field_validator("refresh_token")
    def validate_refresh_token(cls, v):
        return _check_refresh_token(v)


class TokenPair(CustomBaseModel):
    """Access token plus the raw refresh token, returned exactly once."""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_at: datetime = Field(..., description="Access token expiry.")


class ClaimsOutput(CustomBaseModel):
    """Identity claims of the current access token."""
    user_id: str
    fingerprint: Optional[str] = None


class MessageOutput(CustomBaseModel):
    message: str
