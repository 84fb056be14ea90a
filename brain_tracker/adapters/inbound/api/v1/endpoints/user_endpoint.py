# brain_tracker/adapters/inbound/api/v1/endpoints/user_endpoint.py

import logging
from typing import Any, Dict
from uuid import UUID
from fastapi import APIRouter, Depends, status

from brain_tracker.application.use_cases.user_use_cases import AsyncUserService
from brain_tracker.adapters.inbound.api.deps import get_current_claims, get_user_service
from brain_tracker.application.dtos.user_dto import UserCreate, UserOutput
from brain_tracker.domain.exceptions import InvalidTokenException

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=UserOutput,
    status_code=status.HTTP_201_CREATED,
    summary="Register User - Creates a new user",
    description="""
    Creates a new user with email address.

    The password must be at least 8 characters and at most 72 bytes long.
    """,
    responses={
        201: {
            "description": "User created successfully",
            "content": {
                "application/json": {
                    "example": {
                        "id": "3fa85f64-5717-4562-b3fc-2c963f66afa6",
                        "email": "user@example.com",
                        "name": "Ada",
                        "isActive": True,
                        "loginCount": 0,
                        "lastLogin": None,
                        "createdAt": "2024-01-01T00:00:00.000Z"
                    }
                }
            }
        },
        409: {
            "description": "Email already in use",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "User with email 'user@example.com' already exists",
                        "code": "RESOURCE_ALREADY_EXISTS"
                    }
                }
            }
        }
    }
)
async def register_user(
        user_input: UserCreate,
        service: AsyncUserService = Depends(get_user_service),
):
    return await service.register_user(user_input)


@router.get(
    "/profile",
    response_model=UserOutput,
    summary="Get My Data - Logged in user data",
    description="Returns the data of the user owning the access token.",
)
async def get_profile(
        claims: Dict[str, Any] = Depends(get_current_claims),
        service: AsyncUserService = Depends(get_user_service),
):
    try:
        user_id = UUID(claims["sub"])
    except (ValueError, TypeError):
        logger.warning(f"Access token subject is not a valid UUID ({claims.get('sub')})")
        raise InvalidTokenException(reason="subject is not a UUID")
    return await service.get_user_by_id(user_id)
