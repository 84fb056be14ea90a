# brain_tracker/application/ports/inbound.py

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from brain_tracker.application.dtos.auth_dto import LoginRequest, TokenPair
from brain_tracker.application.dtos.user_dto import UserCreate, UserOutput


class IAuthUseCase(ABC):
    """Interface for token lifecycle use cases."""

    @abstractmethod
    async def login_user(
            self,
            credentials: LoginRequest,
            fingerprint: Optional[str],
            metadata: Optional[dict] = None,
    ) -> TokenPair:
        """Authenticate credentials and issue a token pair."""
        pass

    @abstractmethod
    async def issue_tokens(
            self,
            user_id: str,
            fingerprint: Optional[str],
            metadata: Optional[dict] = None,
    ) -> TokenPair:
        """Issue an access token and a refresh token for a verified user id."""
        pass

    @abstractmethod
    async def rotate_refresh_token(self, raw_refresh_token: str, fingerprint: Optional[str]) -> TokenPair:
        """Exchange a refresh token for a new pair."""
        pass

    @abstractmethod
    async def logout(self, raw_refresh_token: str) -> None:
        """Consume a refresh token."""
        pass


class IUserUseCase(ABC):
    """Interface for user-related use cases."""

    @abstractmethod
    async def register_user(self, user_data: UserCreate) -> UserOutput:
        """Register a new user."""
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> UserOutput:
        """Get user by ID."""
        pass
