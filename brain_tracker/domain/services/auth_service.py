# brain_tracker/domain/services/auth_service.py

import hashlib
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

UNKNOWN_FINGERPRINT = "unknown"
REFRESH_TOKEN_BYTES = 32  # 256 bits
REFRESH_TOKEN_PATTERN = re.compile(r"^[a-f0-9]{64}$", re.IGNORECASE)


class AuthService:
    """
    Domain service for authentication-related business logic.
    """

    @staticmethod
    def create_token_payload(
            subject: str,
            fingerprint: str,
            issuer: str,
            audience: str,
            expires_delta: timedelta,
            issued_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Create an access token payload with standard claims.

        Args:
            subject: The user id
            fingerprint: Device fingerprint bound to the token
            issuer: Configured issuer
            audience: Configured audience
            expires_delta: Token lifetime
            issued_at: Issuance instant, defaults to now

        Returns:
            Dict with all token claims
        """
        issued_at = issued_at or datetime.now(timezone.utc)
        expire = issued_at + expires_delta

        return {
            "sub": str(subject),
            "fp": fingerprint,
            "iss": issuer,
            "aud": audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
        }

    @staticmethod
    def generate_refresh_token() -> str:
        """Random opaque refresh token, 64 hex characters."""
        return secrets.token_hex(REFRESH_TOKEN_BYTES)

    @staticmethod
    def hash_token(raw_token: str) -> str:
        """SHA-256 hex digest of a raw refresh token."""
        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    @staticmethod
    def is_well_formed_refresh_token(raw_token: Optional[str]) -> bool:
        return bool(raw_token) and REFRESH_TOKEN_PATTERN.match(raw_token) is not None

    @staticmethod
    def normalize_fingerprint(fingerprint: Optional[str]) -> str:
        """A missing fingerprint is recorded as the literal 'unknown'."""
        if fingerprint is None:
            return UNKNOWN_FINGERPRINT
        fingerprint = str(fingerprint).strip()
        return fingerprint or UNKNOWN_FINGERPRINT

    @staticmethod
    def fingerprint_present(fingerprint: Optional[str]) -> bool:
        return bool(fingerprint) and fingerprint != UNKNOWN_FINGERPRINT

    @classmethod
    def binding_holds(
            cls,
            token_fingerprint: Optional[str],
            request_fingerprint: Optional[str],
            require_fingerprint: bool = False,
    ) -> bool:
        """
        Compare the fingerprint bound into an access token with the one
        computed for the current request.

        When either side is missing the check passes, unless
        ``require_fingerprint`` is set.
        """
        token_has = cls.fingerprint_present(token_fingerprint)
        request_has = cls.fingerprint_present(request_fingerprint)
        if not (token_has and request_has):
            return not require_fingerprint
        return cls.fingerprints_equal(token_fingerprint, request_fingerprint)

    @staticmethod
    def fingerprints_equal(left: str, right: str) -> bool:
        return secrets.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
