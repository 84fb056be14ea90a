"""Tests for refresh token records and their stores."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.dialects import postgresql

from brain_tracker.adapters.outbound.persistence.repositories.memory_repository import MemoryRefreshTokenRepository
from brain_tracker.adapters.outbound.persistence.repositories.refresh_token_repository import (
    AsyncRefreshTokenRepository,
)
from brain_tracker.domain.exceptions import ResourceAlreadyExistsException
from brain_tracker.domain.models.refresh_token_domain_model import RefreshTokenRecord, validate_metadata
from brain_tracker.domain.services.auth_service import AuthService

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(expires_in=timedelta(days=30), **kwargs):
    return RefreshTokenRecord(
        token_hash=AuthService.hash_token(AuthService.generate_refresh_token()),
        user_id="user-1",
        device="dev-A",
        expires_at=NOW + expires_in,
        **kwargs,
    )


class TestMetadata:
    def test_valid_bag(self):
        assert validate_metadata({"client": "web", "app.version": "1.2"}) == {"client": "web", "app.version": "1.2"}

    def test_empty_bag(self):
        assert validate_metadata(None) == {}

    def test_too_many_keys(self):
        with pytest.raises(ValueError):
            validate_metadata({f"k{i}": "v" for i in range(17)})

    @pytest.mark.parametrize("bag", [
        {"bad key": "v"},
        {"": "v"},
        {"k": 1},
        {"k": "x" * 257},
    ])
    def test_invalid_entries(self, bag):
        with pytest.raises(ValueError):
            validate_metadata(bag)

    def test_record_validates_bag(self):
        with pytest.raises(ValueError):
            _record(metadata={"bad key": "v"})


class TestMemoryStore:
    async def test_consume_is_single_use(self):
        store = MemoryRefreshTokenRepository()
        record = await store.create(None, _record())

        assert await store.consume(None, record.token_hash, NOW) is True
        assert await store.consume(None, record.token_hash, NOW) is False

    async def test_expired_record_cannot_be_consumed(self):
        store = MemoryRefreshTokenRepository()
        record = await store.create(None, _record(expires_in=timedelta(seconds=-1)))

        assert await store.consume(None, record.token_hash, NOW) is False

    async def test_lookup_returns_copy(self):
        store = MemoryRefreshTokenRepository()
        record = await store.create(None, _record())

        found = await store.get_by_hash(None, record.token_hash)
        found.consumed = True

        assert (await store.get_by_hash(None, record.token_hash)).consumed is False

    async def test_duplicate_hash_rejected(self):
        store = MemoryRefreshTokenRepository()
        record = await store.create(None, _record())

        with pytest.raises(ResourceAlreadyExistsException):
            await store.create(None, record)

    async def test_cleanup_removes_only_expired(self):
        store = MemoryRefreshTokenRepository()
        await store.create(None, _record(expires_in=timedelta(seconds=-1)))
        live = await store.create(None, _record())

        assert await store.cleanup_expired(None, NOW) == 1
        assert list(store.records) == [live.token_hash]


class TestSqlConsumeStatement:
    def test_statement_is_conditional(self):
        statement = AsyncRefreshTokenRepository.consume_statement("abc", NOW)
        sql = str(statement.compile(dialect=postgresql.dialect()))

        assert sql.startswith("UPDATE refresh_tokens SET consumed=")
        assert "refresh_tokens.token_hash = " in sql
        assert "refresh_tokens.consumed IS false" in sql
        assert "refresh_tokens.expires_at > " in sql
