# brain_tracker/adapters/outbound/persistence/models/__init__.py

"""
ORM models, exported so that Alembic and the schema bootstrap see every table.
"""

from brain_tracker.adapters.outbound.persistence.models.base_model import Base
from brain_tracker.adapters.outbound.persistence.models.user_model import User
from brain_tracker.adapters.outbound.persistence.models.refresh_token_model import RefreshToken

__all__ = [
    "Base",
    "User",
    "RefreshToken",
]
