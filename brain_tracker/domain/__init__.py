# brain_tracker/domain/__init__.py

"""
Domain components: exceptions, models and token rules.
"""

# Export all exceptions for easier imports
from brain_tracker.domain.exceptions import (
    TrackerException,
    ResourceNotFoundException,
    ResourceAlreadyExistsException,
    InvalidCredentialsException,
    InvalidTokenException,
    TokenExpiredException,
    BindingMismatchException,
    InvalidInputException,
    DatabaseOperationException,
    KeyMaterialException,
)
