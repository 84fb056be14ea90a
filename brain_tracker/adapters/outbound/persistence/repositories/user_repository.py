# brain_tracker/adapters/outbound/persistence/repositories/user_repository.py

"""
Repository for user operations.

Users are the login collaborator of the token core: the repository only
covers lookup, creation and login bookkeeping.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from brain_tracker.adapters.outbound.persistence.models.user_model import User
from brain_tracker.application.ports.outbound import IUserRepository
from brain_tracker.domain.models.user_domain_model import User as DomainUser
from brain_tracker.domain.exceptions import (
    ResourceAlreadyExistsException,
    DatabaseOperationException,
)


def _to_domain(user: User) -> DomainUser:
    return DomainUser(
        id=user.id,
        email=user.email,
        password=user.password,
        name=user.name,
        is_active=user.is_active,
        login_count=user.login_count or 0,
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class AsyncUserCRUD(IUserRepository):
    """
    Async repository for the User entity.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def get(self, db: AsyncSession, id: Any) -> Optional[DomainUser]:
        try:
            user_id = id if isinstance(id, UUID) else UUID(str(id))
        except ValueError:
            return None
        try:
            result = await db.execute(select(User).where(User.id == user_id))
            user = result.scalar_one_or_none()
            return _to_domain(user) if user else None
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching user {user_id}: {e}")
            raise DatabaseOperationException(detail="Error fetching user", original_error=e)

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[DomainUser]:
        """
        Find a user by email.

        Args:
            db: Async database session
            email: User's email

        Returns:
            User found or None if doesn't exist

        Raises:
            DatabaseOperationException: In case of database error
        """
        try:
            query = select(User).where(User.email == email.lower())
            result = await db.execute(query)
            user = result.scalar_one_or_none()
            return _to_domain(user) if user else None
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching user by email: {e}")
            raise DatabaseOperationException(
                detail="Error fetching user by email",
                original_error=e
            )

    async def create_with_password(self, db: AsyncSession, user_data: Dict[str, Any]) -> DomainUser:
        """
        Create a user. The password in ``user_data`` is already hashed.

        Raises:
            ResourceAlreadyExistsException: If the email is already in use
            DatabaseOperationException: In case of database error
        """
        email = user_data["email"].lower()
        if await self.get_by_email(db, email):
            raise ResourceAlreadyExistsException(detail=f"User with email '{email}' already exists")

        try:
            user = User(
                email=email,
                password=user_data["password"],
                name=user_data.get("name"),
                is_active=True,
                login_count=0,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            self.logger.info(f"User created: {user.id}")
            return _to_domain(user)
        except IntegrityError:
            await db.rollback()
            raise ResourceAlreadyExistsException(detail=f"User with email '{email}' already exists")
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error creating user: {e}")
            raise DatabaseOperationException(detail="Error creating user", original_error=e)

    async def register_login(self, db: AsyncSession, user_id: Any, when: datetime) -> None:
        try:
            await db.execute(
                update(User)
                .where(User.id == user_id)
                .values(last_login=when, login_count=User.login_count + 1)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error recording login for user {user_id}: {e}")
            raise DatabaseOperationException(detail="Error updating user", original_error=e)


user_repository = AsyncUserCRUD()
