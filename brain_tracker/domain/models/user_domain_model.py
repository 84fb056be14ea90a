# brain_tracker/domain/models/user_domain_model.py

from uuid import UUID, uuid4
from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime, timezone


@dataclass
class User:
    """Domain model for a user entity."""
    email: str
    password: str  # This would be hashed already
    name: Optional[str] = None
    is_active: bool = True
    login_count: int = 0
    last_login: Optional[datetime] = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
