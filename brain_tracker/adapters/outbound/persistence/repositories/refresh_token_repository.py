# brain_tracker/adapters/outbound/persistence/repositories/refresh_token_repository.py

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from brain_tracker.adapters.outbound.persistence.models.refresh_token_model import RefreshToken
from brain_tracker.application.ports.outbound import IRefreshTokenRepository
from brain_tracker.domain.exceptions import DatabaseOperationException
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord

logger = logging.getLogger(__name__)


def _to_domain(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        id=row.id,
        token_hash=row.token_hash,
        user_id=row.user_id,
        device=row.device,
        expires_at=row.expires_at,
        consumed=row.consumed,
        metadata=row.token_metadata or {},
        created_at=row.created_at,
    )


class AsyncRefreshTokenRepository(IRefreshTokenRepository):
    """Refresh Store backed by the ``refresh_tokens`` table."""

    @staticmethod
    def consume_statement(token_hash: str, now: datetime):
        """
        Conditional update flipping ``consumed``. Only a row that is still
        unconsumed and unexpired matches, so at most one concurrent caller
        gets a rowcount of 1.
        """
        return (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.consumed.is_(False),
                RefreshToken.expires_at > now,
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )

    async def create(self, db: AsyncSession, record: RefreshTokenRecord) -> RefreshTokenRecord:
        """
        Insert a new refresh token row.

        Args:
            db: Async database session
            record: Record holding the token hash, never the raw token

        Returns:
            The stored record
        """
        try:
            row = RefreshToken(
                id=record.id,
                token_hash=record.token_hash,
                user_id=record.user_id,
                device=record.device,
                expires_at=record.expires_at,
                consumed=False,
                token_metadata=record.metadata,
            )
            db.add(row)
            await db.commit()
            return record
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error storing refresh token for user {record.user_id}: {type(e).__name__}")
            raise DatabaseOperationException(
                detail="Error storing refresh token",
                original_error=e
            )

    async def get_by_hash(self, db: AsyncSession, token_hash: str) -> Optional[RefreshTokenRecord]:
        try:
            query = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
            result = await db.execute(query)
            row = result.scalar_one_or_none()
            return _to_domain(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error fetching refresh token: {type(e).__name__}")
            raise DatabaseOperationException(
                detail="Error fetching refresh token",
                original_error=e
            )

    async def consume(self, db: AsyncSession, token_hash: str, now: datetime) -> bool:
        try:
            result = await db.execute(self.consume_statement(token_hash, now))
            # Committed here so the consumption is durable before a new pair exists
            await db.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error consuming refresh token: {type(e).__name__}")
            raise DatabaseOperationException(
                detail="Error consuming refresh token",
                original_error=e
            )

    async def cleanup_expired(self, db: AsyncSession, now: datetime) -> int:
        """
        Remove expired refresh tokens to keep the table size manageable.

        Returns:
            Number of records deleted
        """
        try:
            result = await db.execute(
                delete(RefreshToken).where(RefreshToken.expires_at <= now)
            )
            await db.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await db.rollback()
            raise DatabaseOperationException(
                detail="Error cleaning up expired refresh tokens",
                original_error=e
            )


# Create instance
refresh_token_repository = AsyncRefreshTokenRepository()
