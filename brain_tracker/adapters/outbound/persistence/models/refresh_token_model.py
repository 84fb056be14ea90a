# brain_tracker/adapters/outbound/persistence/models/refresh_token_model.py

"""
Refresh token table.

Stores only the SHA-256 hash of each refresh token. A row goes from
``consumed = false`` to ``consumed = true`` once (rotation or logout) and
is deleted by the cleanup task after ``expires_at``.
"""

import uuid
from sqlalchemy import Column, String, DateTime, Boolean, JSON, Index, func
from sqlalchemy.dialects.postgresql import UUID

from brain_tracker.adapters.outbound.persistence.models.base_model import Base


class RefreshToken(Base):
    """
    Attributes:
        id: Row identifier
        token_hash: SHA-256 of the raw token, unique lookup key
        user_id: Owner of the token
        device: Device fingerprint hash at issuance
        expires_at: Instant after which the token can no longer rotate
        consumed: Set once by rotation or logout
        token_metadata: Optional string-to-string bag
    """
    __tablename__ = "refresh_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    device = Column(String, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed = Column(Boolean, default=False, nullable=False)
    token_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<RefreshToken(user_id={self.user_id}, consumed={self.consumed})>"
