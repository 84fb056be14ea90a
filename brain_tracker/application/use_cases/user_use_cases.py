# brain_tracker/application/use_cases/user_use_cases.py

import logging
from typing import Any
from uuid import UUID

from brain_tracker.adapters.outbound.security.token_manager import TokenManager
from brain_tracker.application.dtos.user_dto import UserCreate, UserOutput
from brain_tracker.application.ports.inbound import IUserUseCase
from brain_tracker.application.ports.outbound import IUserRepository
from brain_tracker.domain.exceptions import ResourceNotFoundException

logger = logging.getLogger(__name__)


class AsyncUserService(IUserUseCase):
    """
    Service for user registration and profile lookup.
    """

    def __init__(self, db_session: Any, users: IUserRepository):
        self.db = db_session
        self.users = users

    async def register_user(self, user_input: UserCreate) -> UserOutput:
        """
        Register a new user.

        Raises:
            ResourceAlreadyExistsException: If the email is already in use
        """
        hashed = await TokenManager.hash_password(user_input.password)
        user = await self.users.create_with_password(
            self.db,
            {"email": user_input.email, "password": hashed, "name": user_input.name},
        )
        return UserOutput.model_validate(user)

    async def get_user_by_id(self, user_id: UUID) -> UserOutput:
        """
        Raises:
            ResourceNotFoundException: If the user doesn't exist or is inactive
        """
        user = await self.users.get(self.db, user_id)
        if not user or not user.is_active:
            raise ResourceNotFoundException(detail="User not found")
        return UserOutput.model_validate(user)
