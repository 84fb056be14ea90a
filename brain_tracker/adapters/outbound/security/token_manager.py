# brain_tracker/adapters/outbound/security/token_manager.py

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError
from passlib.context import CryptContext

from brain_tracker.adapters.configuration.config import settings, ACCESS_TOKEN_EXPIRE_MINUTES
from brain_tracker.adapters.outbound.security.key_provider import build_key_provider
from brain_tracker.application.ports.outbound import IKeyProvider
from brain_tracker.domain.exceptions import InvalidTokenException, KeyMaterialException
from brain_tracker.domain.services.auth_service import AuthService

logger = logging.getLogger(__name__)

DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_aud": True,
    "verify_iss": True,
    "verify_exp": True,
    "require_exp": True,
    "require_iss": True,
    "require_aud": True,
    "require_sub": True,
    "leeway": 0,
}


class TokenManager:
    """
    Signs and verifies access tokens and hashes passwords.

    Exactly one asymmetric algorithm is accepted on verification; a token
    whose header names anything else is rejected before any key lookup.
    """

    crypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def __init__(
            self,
            key_provider: IKeyProvider,
            issuer: str,
            audience: str,
            algorithm: str = "RS256",
            key_id: Optional[str] = None,
            access_token_lifetime: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    ):
        self.key_provider = key_provider
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self.key_id = key_id
        self.access_token_lifetime = access_token_lifetime

    @classmethod
    async def hash_password(cls, password: str) -> str:
        """Return the bcrypt hash of a plain text password, off the event loop."""
        return await asyncio.to_thread(cls.crypt_context.hash, password)

    @classmethod
    async def verify_password(cls, plain_password: str, hashed_password: str) -> bool:
        """Verify a plain text password against the stored hash, off the event loop."""
        return await asyncio.to_thread(cls.crypt_context.verify, plain_password, hashed_password)

    def create_access_token(
            self,
            subject: str,
            fingerprint: str,
            issued_at: Optional[datetime] = None,
    ) -> Tuple[str, datetime]:
        """
        Create a signed access token.

        - subject: the user's id.
        - fingerprint: device fingerprint bound as the ``fp`` claim.
        - issued_at: issuance instant, defaults to now.

        Returns the token and its expiry.
        """
        payload = AuthService.create_token_payload(
            subject=subject,
            fingerprint=fingerprint,
            issuer=self.issuer,
            audience=self.audience,
            expires_delta=self.access_token_lifetime,
            issued_at=issued_at,
        )
        headers = {"kid": self.key_id} if self.key_id else None
        token = jwt.encode(
            payload,
            self.key_provider.get_signing_key(),
            algorithm=self.algorithm,
            headers=headers,
        )
        return token, datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

    async def verify_access_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature, algorithm, issuer, audience and expiry.

        Raises:
            InvalidTokenException: On any failure; the reason is logged only
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise InvalidTokenException(reason="malformed token")

        if header.get("alg") != self.algorithm:
            raise InvalidTokenException(reason=f"algorithm {header.get('alg')!r} not allowed")

        try:
            key = await self.key_provider.get_verification_key(header.get("kid"))
        except KeyMaterialException as e:
            logger.error(f"Verification key unavailable: {e.detail}")
            raise InvalidTokenException(reason="verification key unavailable")

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options=DECODE_OPTIONS,
            )
        except ExpiredSignatureError:
            raise InvalidTokenException(reason="expired")
        except JWTClaimsError as e:
            raise InvalidTokenException(reason=f"claims rejected: {e}")
        except JWTError as e:
            raise InvalidTokenException(reason=f"signature rejected: {e}")

        if not payload.get("sub"):
            raise InvalidTokenException(reason="missing subject")
        return payload


token_manager = TokenManager(
    key_provider=build_key_provider(settings),
    issuer=settings.JWT_ISSUER,
    audience=settings.JWT_AUDIENCE,
    algorithm=settings.JWT_ALGORITHM,
    key_id=settings.JWT_KEY_ID,
)
