# brain_tracker/application/dtos/user_dto.py

"""
Schemas for user data.
"""

from uuid import UUID
from datetime import datetime
from typing import Optional
from pydantic import ConfigDict, EmailStr, Field, field_validator

from brain_tracker.application.dtos.base_dto import CustomBaseModel
from brain_tracker.shared.utils.input_validation import InputValidator


class UserBase(CustomBaseModel):
    """
    Base schema for user data.
    """
    email: EmailStr = Field(..., description="User email. Must be valid and unique.")

    @field_validator('email')
    def validate_email_security(cls, v):
        is_valid, error_msg = InputValidator.validate_email(v)
        if not is_valid:
            raise ValueError(error_msg)
        return v.lower()


class UserCreate(UserBase):
    """
    Schema used to register a user.
    """
    password: str = Field(..., description="User password, at least 8 characters.")
    name: Optional[str] = Field(None, description="Display name.")

    @field_validator('password')
    def validate_password_security(cls, v):
        is_valid, error_msg = InputValidator.validate_password(v)
        if not is_valid:
            raise ValueError(error_msg)
        return v

    @field_validator('name')
    def validate_name(cls, v):
        if v is None:
            return v
        is_valid, error_msg = InputValidator.validate_name(v)
        if not is_valid:
            raise ValueError(error_msg)
        return v


class UserOutput(UserBase):
    """
    Public user data, without the password hash.
    """
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: Optional[str] = None
    is_active: bool
    login_count: int = 0
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
