# brain_tracker/application/ports/outbound.py

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from brain_tracker.domain.models.user_domain_model import User
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord


class IRefreshTokenRepository(ABC):
    """
    Refresh Store interface.

    ``db`` is the active session for SQL-backed implementations and is
    ignored by the in-process store.
    """

    @abstractmethod
    async def create(self, db: Any, record: RefreshTokenRecord) -> RefreshTokenRecord:
        """Persist a new, unconsumed record."""
        pass

    @abstractmethod
    async def get_by_hash(self, db: Any, token_hash: str) -> Optional[RefreshTokenRecord]:
        """Find a record by token hash."""
        pass

    @abstractmethod
    async def consume(self, db: Any, token_hash: str, now: datetime) -> bool:
        """
        Atomically flip ``consumed`` to True if the record is still
        unconsumed and unexpired. Returns True only for the caller that
        performed the flip.
        """
        pass

    @abstractmethod
    async def cleanup_expired(self, db: Any, now: datetime) -> int:
        """Delete expired records, returning how many were removed."""
        pass


class IUserRepository(ABC):
    """User repository interface."""

    @abstractmethod
    async def get(self, db: Any, id: Any) -> Optional[User]:
        """Get user by ID."""
        pass

    @abstractmethod
    async def get_by_email(self, db: Any, email: str) -> Optional[User]:
        """Get user by email."""
        pass

    @abstractmethod
    async def create_with_password(self, db: Any, user_data: Dict[str, Any]) -> User:
        """Create user; ``user_data['password']`` is already hashed."""
        pass

    @abstractmethod
    async def register_login(self, db: Any, user_id: Any, when: datetime) -> None:
        """Record a successful login."""
        pass


class IKeyProvider(ABC):
    """Key material interface."""

    @abstractmethod
    def get_signing_key(self) -> str:
        """PEM encoded private key."""
        pass

    @abstractmethod
    async def get_verification_key(self, kid: Optional[str]) -> Any:
        """Public key (PEM or JWK dict) for the given key id."""
        pass
