# brain_tracker/adapters/outbound/persistence/models/user_model.py

from sqlalchemy import Column, Boolean, Integer, String, DateTime, func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from brain_tracker.adapters.outbound.persistence.models.base_model import Base


class User(Base):
    """
    System user.

    Attributes:
        id: Unique identifier, used as the ``sub`` claim
        email: Login email, stored lowercased
        password: bcrypt hash of the password
        name: Display name
        is_active: Inactive users cannot log in
        last_login: Last successful login
        login_count: Number of successful logins
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    name = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    login_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User(email={self.email}, active={self.is_active})>"
