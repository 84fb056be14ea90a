# brain_tracker/adapters/inbound/api/deps.py

"""
Dependencies for injection into API endpoints.

This module defines functions that provide dependencies via
FastAPI Depends() for services, the current access token claims and
the device fingerprint of the request.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brain_tracker.adapters.configuration.config import settings
from brain_tracker.adapters.outbound.persistence.database import get_db
from brain_tracker.adapters.outbound.persistence.repositories import (
    get_refresh_token_repository,
    get_user_repository,
)
from brain_tracker.adapters.outbound.security.token_manager import token_manager
from brain_tracker.application.use_cases.auth_use_cases import AsyncAuthService
from brain_tracker.application.use_cases.user_use_cases import AsyncUserService
from brain_tracker.domain.exceptions import InvalidTokenException

# Configure logger
logger = logging.getLogger(__name__)

########################################################################
# Database Session Management
########################################################################

# Alias for get_db
get_session = get_db


########################################################################
# Services
########################################################################

async def get_auth_service(db: Optional[AsyncSession] = Depends(get_session)) -> AsyncAuthService:
    return AsyncAuthService(
        db,
        refresh_tokens=get_refresh_token_repository(),
        users=get_user_repository(),
        tokens=token_manager,
        logout_idempotent=settings.LOGOUT_IDEMPOTENT,
    )


async def get_user_service(db: Optional[AsyncSession] = Depends(get_session)) -> AsyncUserService:
    return AsyncUserService(db, users=get_user_repository())


########################################################################
# Request context
########################################################################

def get_request_fingerprint(request: Request) -> Optional[str]:
    """Fingerprint computed by the device fingerprint middleware."""
    return getattr(request.state, "fingerprint", None)


def get_current_claims(request: Request) -> Dict[str, Any]:
    """
    Claims of the verified access token.

    Raises:
        InvalidTokenException: If the access token middleware did not run
            for this path
    """
    claims = getattr(request.state, "claims", None)
    if not claims:
        logger.warning(f"No verified claims on protected route {request.url.path}")
        raise InvalidTokenException(reason="no verified claims")
    return claims
