# brain_tracker/application/use_cases/auth_use_cases.py

"""
Token lifecycle service.

Implements login, token issuance, single-use refresh token rotation with
device binding, and logout. Raw refresh tokens are returned to the caller
once and never stored or logged; only their SHA-256 hash reaches the
Refresh Store.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from brain_tracker.adapters.configuration.config import REFRESH_TOKEN_EXPIRE_DAYS
from brain_tracker.adapters.outbound.security.token_manager import TokenManager
from brain_tracker.application.dtos.auth_dto import LoginRequest, TokenPair
from brain_tracker.application.ports.inbound import IAuthUseCase
from brain_tracker.application.ports.outbound import IRefreshTokenRepository, IUserRepository
from brain_tracker.domain.exceptions import (
    InvalidCredentialsException,
    InvalidInputException,
    InvalidTokenException,
    TokenExpiredException,
)
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord
from brain_tracker.domain.services.auth_service import AuthService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_dummy_password_hash: Optional[str] = None


async def _dummy_hash(tokens: TokenManager) -> str:
    """bcrypt hash compared against when the account does not exist."""
    global _dummy_password_hash
    if _dummy_password_hash is None:
        _dummy_password_hash = await tokens.hash_password(AuthService.generate_refresh_token())
    return _dummy_password_hash


class AsyncAuthService(IAuthUseCase):
    """
    Service for user authentication and token rotation.

    Token Issuer and Rotation Engine are the only writers of the
    Refresh Store.
    """

    def __init__(
            self,
            db_session: Any,
            refresh_tokens: IRefreshTokenRepository,
            users: IUserRepository,
            tokens: TokenManager,
            logout_idempotent: bool = False,
            refresh_token_lifetime: timedelta = timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
            clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Args:
            db_session: Active SQLAlchemy session, or None for the in-process store
            refresh_tokens: Refresh Store
            users: User repository used by login
            tokens: Access token signer
            logout_idempotent: Treat logout of a consumed token as success
            refresh_token_lifetime: Refresh record lifetime
            clock: Source of the current time
        """
        self.db = db_session
        self.refresh_tokens = refresh_tokens
        self.users = users
        self.tokens = tokens
        self.logout_idempotent = logout_idempotent
        self.refresh_token_lifetime = refresh_token_lifetime
        self.clock = clock

    async def login_user(
            self,
            credentials: LoginRequest,
            fingerprint: Optional[str],
            metadata: Optional[dict] = None,
    ) -> TokenPair:
        """
        Authenticate a user and issue a token pair.

        ``metadata`` (e.g. the client user agent) is stored on the refresh
        record and carried over on every rotation.

        Unknown email, inactive account and wrong password are reported
        identically.

        Raises:
            InvalidCredentialsException: If credentials are invalid
        """
        user = await self.users.get_by_email(self.db, credentials.email)
        if user is None or not user.is_active:
            # Spend the same bcrypt time as a real comparison
            await self.tokens.verify_password(credentials.password, await _dummy_hash(self.tokens))
            logger.warning("Login attempt for unknown or inactive account")
            raise InvalidCredentialsException()

        if not await self.tokens.verify_password(credentials.password, user.password):
            logger.warning(f"Login attempt with incorrect password for user {user.id}")
            raise InvalidCredentialsException()

        await self.users.register_login(self.db, user.id, self.clock())
        return await self.issue_tokens(str(user.id), fingerprint or credentials.fingerprint, metadata=metadata)

    async def issue_tokens(
            self,
            user_id: str,
            fingerprint: Optional[str],
            metadata: Optional[dict] = None,
    ) -> TokenPair:
        """
        Mint an access token and a fresh refresh token.

        Creates exactly one Refresh Store record.

        Raises:
            InvalidInputException: If ``user_id`` is empty
        """
        if not user_id or not str(user_id).strip():
            raise InvalidInputException(detail="User id is required")

        device = AuthService.normalize_fingerprint(fingerprint)
        now = self.clock()

        access_token, access_expires_at = self.tokens.create_access_token(
            subject=str(user_id), fingerprint=device, issued_at=now
        )

        raw_refresh = AuthService.generate_refresh_token()
        record = RefreshTokenRecord(
            token_hash=AuthService.hash_token(raw_refresh),
            user_id=str(user_id),
            device=device,
            expires_at=now + self.refresh_token_lifetime,
            metadata=metadata or {},
        )
        await self.refresh_tokens.create(self.db, record)
        logger.info(f"Issued token pair for user {user_id} (refresh {record.token_hash[:8]}...)")

        return TokenPair(
            access_token=access_token,
            refresh_token=raw_refresh,
            expires_at=access_expires_at,
        )

    async def rotate_refresh_token(self, raw_refresh_token: str, fingerprint: Optional[str]) -> TokenPair:
        """
        Exchange a refresh token for a new pair.

        Not found, already consumed and wrong device all raise the same
        InvalidTokenException. Only the owner on the right device can
        learn that a token expired.

        Raises:
            InvalidInputException: Malformed token
            InvalidTokenException: Unknown, consumed or device mismatch
            TokenExpiredException: Past its expiry
        """
        if not AuthService.is_well_formed_refresh_token(raw_refresh_token):
            raise InvalidInputException(detail="Invalid refresh token format")

        token_hash = AuthService.hash_token(raw_refresh_token)
        device = AuthService.normalize_fingerprint(fingerprint)
        record = await self.refresh_tokens.get_by_hash(self.db, token_hash)

        if (
                record is None
                or record.consumed
                or not AuthService.fingerprints_equal(record.device, device)
        ):
            reason = "not found" if record is None else ("consumed" if record.consumed else "device mismatch")
            logger.warning(f"Refresh rejected ({reason}) for token {token_hash[:8]}...")
            raise InvalidTokenException(reason=reason)

        now = self.clock()
        if record.is_expired(now):
            logger.info(f"Refresh rejected (expired) for user {record.user_id}")
            raise TokenExpiredException()

        # Single conditional write; a concurrent rotation of the same token loses here
        if not await self.refresh_tokens.consume(self.db, token_hash, now):
            logger.warning(f"Refresh rejected (lost consume race) for token {token_hash[:8]}...")
            raise InvalidTokenException(reason="consumed")

        logger.info(f"Rotated refresh token for user {record.user_id}")
        return await self.issue_tokens(record.user_id, device, metadata=record.metadata)

    async def logout(self, raw_refresh_token: str) -> None:
        """
        Consume a refresh token.

        Raises:
            InvalidInputException: Malformed token
            InvalidTokenException: No matching unconsumed token, unless
                logout is configured as idempotent and the token exists
        """
        if not AuthService.is_well_formed_refresh_token(raw_refresh_token):
            raise InvalidInputException(detail="Invalid refresh token format")

        token_hash = AuthService.hash_token(raw_refresh_token)
        if await self.refresh_tokens.consume(self.db, token_hash, self.clock()):
            logger.info(f"Logged out refresh token {token_hash[:8]}...")
            return

        if self.logout_idempotent and await self.refresh_tokens.get_by_hash(self.db, token_hash):
            logger.info(f"Repeated logout for refresh token {token_hash[:8]}...")
            return

        logger.warning(f"Logout rejected for token {token_hash[:8]}...")
        raise InvalidTokenException(reason="not found or already consumed")
