# brain_tracker/shared/utils/input_validation.py

import re
from typing import Optional, Tuple


class InputValidator:
    """
    Validation helpers complementing the Pydantic models.
    """

    MAX_NAME_LENGTH = 100
    MIN_NAME_LENGTH = 2
    MAX_PASSWORD_LENGTH = 72  # bcrypt only looks at the first 72 bytes
    MIN_PASSWORD_LENGTH = 8
    MAX_EMAIL_LENGTH = 255
    MAX_FINGERPRINT_LENGTH = 128

    EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
    FINGERPRINT_PATTERN = re.compile(r'^[A-Za-z0-9_.:\-]+$')
    DANGEROUS_CHARS = re.compile(r'[<>\'";%{}\[\]$]')

    @classmethod
    def validate_name(cls, name: str) -> Tuple[bool, Optional[str]]:
        if not name or not name.strip():
            return False, "Name cannot be empty"

        if not cls.MIN_NAME_LENGTH <= len(name.strip()) <= cls.MAX_NAME_LENGTH:
            return False, f"Name must be between {cls.MIN_NAME_LENGTH} and {cls.MAX_NAME_LENGTH} characters"

        if cls.DANGEROUS_CHARS.search(name):
            return False, "Name contains characters that are not allowed"

        return True, None

    @classmethod
    def validate_password(cls, password: str) -> Tuple[bool, Optional[str]]:
        """
        Validate password length.

        Args:
            password: Password to validate

        Returns:
            Tuple (valid, error_message)
        """
        if not password:
            return False, "Password cannot be empty"

        if len(password) < cls.MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {cls.MIN_PASSWORD_LENGTH} characters"

        if len(password.encode("utf-8")) > cls.MAX_PASSWORD_LENGTH:
            return False, f"Password is too long (maximum {cls.MAX_PASSWORD_LENGTH} bytes)"

        return True, None

    @classmethod
    def validate_email(cls, email: str) -> Tuple[bool, Optional[str]]:
        """
        Validate email format and length.

        Args:
            email: Email to validate

        Returns:
            Tuple (valid, error_message)
        """
        if not email:
            return False, "Email cannot be empty"

        if len(email) > cls.MAX_EMAIL_LENGTH:
            return False, f"Email is too long (maximum {cls.MAX_EMAIL_LENGTH} characters)"

        if not cls.EMAIL_PATTERN.match(email):
            return False, "Invalid email format"

        return True, None

    @classmethod
    def validate_fingerprint(cls, fingerprint: str) -> Tuple[bool, Optional[str]]:
        """Client supplied fingerprints are short opaque identifiers."""
        if len(fingerprint) > cls.MAX_FINGERPRINT_LENGTH:
            return False, f"Fingerprint is too long (maximum {cls.MAX_FINGERPRINT_LENGTH} characters)"

        if not cls.FINGERPRINT_PATTERN.match(fingerprint):
            return False, "Fingerprint contains invalid characters"

        return True, None
