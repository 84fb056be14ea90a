"""Tests for the periodic refresh token cleanup."""

from datetime import datetime, timedelta, timezone

from brain_tracker.adapters.outbound.persistence.repositories import memory_refresh_token_repository
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord
from brain_tracker.domain.services.auth_service import AuthService
from brain_tracker.main import cleanup_refresh_tokens


def _record(expires_at):
    return RefreshTokenRecord(
        token_hash=AuthService.hash_token(AuthService.generate_refresh_token()),
        user_id="user-1",
        device="dev-A",
        expires_at=expires_at,
    )


async def test_cleanup_removes_expired_records():
    now = datetime.now(timezone.utc)
    await memory_refresh_token_repository.create(None, _record(now - timedelta(minutes=1)))
    live = await memory_refresh_token_repository.create(None, _record(now + timedelta(days=1)))

    deleted = await cleanup_refresh_tokens()

    assert deleted == 1
    assert list(memory_refresh_token_repository.records) == [live.token_hash]
