# brain_tracker/application/use_cases/__init__.py

"""
Application service module.

Token lifecycle and user services, each taking its repositories and an
optional database session at construction.
"""

# Export service classes for easier imports
from brain_tracker.application.use_cases.user_use_cases import AsyncUserService
from brain_tracker.application.use_cases.auth_use_cases import AsyncAuthService

# Export all services
__all__ = [
    "AsyncUserService",
    "AsyncAuthService",
]
