# brain_tracker/adapters/outbound/persistence/repositories/__init__.py

"""
Repository module.

Exports the SQL-backed repositories and their in-process counterparts,
plus helpers picking one according to ``USE_MEMORY_STORE``.
"""

from brain_tracker.adapters.configuration.config import settings
from brain_tracker.application.ports.outbound import IRefreshTokenRepository, IUserRepository
from brain_tracker.adapters.outbound.persistence.repositories.refresh_token_repository import (
    AsyncRefreshTokenRepository,
    refresh_token_repository,
)
from brain_tracker.adapters.outbound.persistence.repositories.user_repository import (
    AsyncUserCRUD,
    user_repository,
)
from brain_tracker.adapters.outbound.persistence.repositories.memory_repository import (
    MemoryRefreshTokenRepository,
    MemoryUserRepository,
    memory_refresh_token_repository,
    memory_user_repository,
)


def get_refresh_token_repository() -> IRefreshTokenRepository:
    if settings.USE_MEMORY_STORE:
        return memory_refresh_token_repository
    return refresh_token_repository


def get_user_repository() -> IUserRepository:
    if settings.USE_MEMORY_STORE:
        return memory_user_repository
    return user_repository


__all__ = [
    # Classes
    "AsyncRefreshTokenRepository",
    "AsyncUserCRUD",
    "MemoryRefreshTokenRepository",
    "MemoryUserRepository",

    # Instances
    "refresh_token_repository",
    "user_repository",
    "memory_refresh_token_repository",
    "memory_user_repository",

    # Selection
    "get_refresh_token_repository",
    "get_user_repository",
]
