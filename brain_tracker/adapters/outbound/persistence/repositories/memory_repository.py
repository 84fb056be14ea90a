# brain_tracker/adapters/outbound/persistence/repositories/memory_repository.py

"""
In-process implementations of the repository ports.

Used when ``USE_MEMORY_STORE`` is set and by the test suite. The ``db``
argument of every method is accepted for interface compatibility and
ignored.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from brain_tracker.application.ports.outbound import IRefreshTokenRepository, IUserRepository
from brain_tracker.domain.exceptions import ResourceAlreadyExistsException
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord
from brain_tracker.domain.models.user_domain_model import User

logger = logging.getLogger(__name__)


class MemoryRefreshTokenRepository(IRefreshTokenRepository):
    """Refresh Store kept in a dict keyed by token hash."""

    def __init__(self):
        self.records: Dict[str, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    async def create(self, db: Any, record: RefreshTokenRecord) -> RefreshTokenRecord:
        with self._lock:
            if record.token_hash in self.records:
                raise ResourceAlreadyExistsException(detail="Refresh token already exists")
            self.records[record.token_hash] = replace(record, consumed=False)
        return record

    async def get_by_hash(self, db: Any, token_hash: str) -> Optional[RefreshTokenRecord]:
        with self._lock:
            record = self.records.get(token_hash)
            return replace(record) if record is not None else None

    async def consume(self, db: Any, token_hash: str, now: datetime) -> bool:
        with self._lock:
            record = self.records.get(token_hash)
            if record is None or record.consumed or record.is_expired(now):
                return False
            record.consumed = True
            return True

    async def cleanup_expired(self, db: Any, now: datetime) -> int:
        with self._lock:
            expired = [h for h, r in self.records.items() if r.is_expired(now)]
            for token_hash in expired:
                del self.records[token_hash]
        return len(expired)


class MemoryUserRepository(IUserRepository):
    """Users kept in a dict keyed by id."""

    def __init__(self):
        self.users: Dict[UUID, User] = {}
        self._lock = threading.Lock()

    async def get(self, db: Any, id: Any) -> Optional[User]:
        try:
            user_id = id if isinstance(id, UUID) else UUID(str(id))
        except ValueError:
            return None
        with self._lock:
            return self.users.get(user_id)

    async def get_by_email(self, db: Any, email: str) -> Optional[User]:
        email = email.lower()
        with self._lock:
            return next((u for u in self.users.values() if u.email == email), None)

    async def create_with_password(self, db: Any, user_data: Dict[str, Any]) -> User:
        email = user_data["email"].lower()
        with self._lock:
            if any(u.email == email for u in self.users.values()):
                raise ResourceAlreadyExistsException(detail=f"User with email '{email}' already exists")
            user = User(
                email=email,
                password=user_data["password"],
                name=user_data.get("name"),
                is_active=user_data.get("is_active", True),
            )
            self.users[user.id] = user
        logger.info(f"User created: {user.id}")
        return user

    async def register_login(self, db: Any, user_id: Any, when: datetime) -> None:
        user = await self.get(db, user_id)
        if user is None:
            return
        with self._lock:
            user.last_login = when
            user.login_count += 1
            user.updated_at = datetime.now(timezone.utc)


memory_refresh_token_repository = MemoryRefreshTokenRepository()
memory_user_repository = MemoryUserRepository()
