"""Unit tests for access token signing and verification."""

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from jose import jwt

from brain_tracker.adapters.outbound.security.key_provider import KeyMaterialProvider
from brain_tracker.adapters.outbound.security.token_manager import TokenManager
from brain_tracker.domain.exceptions import InvalidTokenException, KeyMaterialException

USER_ID = "3fa85f64-5717-4562-b3fc-2c963f66afa6"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _hs256_token(payload, secret: bytes) -> str:
    header = _b64url(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
    body = _b64url(json.dumps(payload).encode())
    signature = hmac.new(secret, f"{header}.{body}".encode("ascii"), hashlib.sha256).digest()
    return f"{header}.{body}.{_b64url(signature)}"


def _payload(tokens, **overrides):
    now = datetime.now(timezone.utc)
    payload = {
        "sub": USER_ID,
        "fp": "dev-A",
        "iss": tokens.issuer,
        "aud": tokens.audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=15)).timestamp()),
    }
    payload.update(overrides)
    return {k: v for k, v in payload.items() if v is not None}


class TestAccessTokenLifetime:
    async def test_fresh_token_verifies(self, tokens):
        token, expires_at = tokens.create_access_token(USER_ID, "dev-A")

        claims = await tokens.verify_access_token(token)
        assert claims["sub"] == USER_ID
        assert claims["fp"] == "dev-A"
        assert expires_at - datetime.now(timezone.utc) <= timedelta(minutes=15)

    async def test_lifetime_is_fifteen_minutes(self, tokens):
        issued_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        _, expires_at = tokens.create_access_token(USER_ID, "dev-A", issued_at=issued_at)

        assert expires_at == issued_at + timedelta(minutes=15)

    async def test_accepted_just_before_expiry(self, tokens):
        issued_at = datetime.now(timezone.utc) - timedelta(minutes=14, seconds=50)
        token, _ = tokens.create_access_token(USER_ID, "dev-A", issued_at=issued_at)

        claims = await tokens.verify_access_token(token)
        assert claims["sub"] == USER_ID

    async def test_rejected_after_expiry(self, tokens):
        issued_at = datetime.now(timezone.utc) - timedelta(minutes=15, seconds=1)
        token, _ = tokens.create_access_token(USER_ID, "dev-A", issued_at=issued_at)

        with pytest.raises(InvalidTokenException) as exc_info:
            await tokens.verify_access_token(token)
        assert exc_info.value.reason == "expired"


class TestVerificationFailures:
    async def test_symmetric_algorithm_rejected(self, tokens):
        token = jwt.encode(_payload(tokens), "shared-secret", algorithm="HS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_hmac_keyed_with_public_key_rejected(self, tokens, key_paths):
        # jose refuses PEM material as an HMAC secret, so sign by hand
        public_pem = Path(key_paths["public"]).read_bytes()
        token = _hs256_token(_payload(tokens), public_pem)

        with pytest.raises(InvalidTokenException) as exc_info:
            await tokens.verify_access_token(token)
        assert "algorithm" in exc_info.value.reason

    async def test_other_asymmetric_algorithm_rejected(self, tokens, key_paths):
        private_pem = Path(key_paths["private"]).read_text()
        token = jwt.encode(_payload(tokens), private_pem, algorithm="RS512")

        with pytest.raises(InvalidTokenException) as exc_info:
            await tokens.verify_access_token(token)
        assert "algorithm" in exc_info.value.reason

    async def test_foreign_signature_rejected(self, tokens, key_paths):
        foreign_pem = Path(key_paths["other_private"]).read_text()
        token = jwt.encode(_payload(tokens), foreign_pem, algorithm="RS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_wrong_issuer_rejected(self, tokens, key_paths):
        private_pem = Path(key_paths["private"]).read_text()
        token = jwt.encode(_payload(tokens, iss="https://elsewhere.test/"), private_pem, algorithm="RS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_wrong_audience_rejected(self, tokens, key_paths):
        private_pem = Path(key_paths["private"]).read_text()
        token = jwt.encode(_payload(tokens, aud="another-api"), private_pem, algorithm="RS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_missing_expiry_rejected(self, tokens, key_paths):
        private_pem = Path(key_paths["private"]).read_text()
        token = jwt.encode(_payload(tokens, exp=None), private_pem, algorithm="RS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_missing_subject_rejected(self, tokens, key_paths):
        private_pem = Path(key_paths["private"]).read_text()
        token = jwt.encode(_payload(tokens, sub=None), private_pem, algorithm="RS256")

        with pytest.raises(InvalidTokenException):
            await tokens.verify_access_token(token)

    async def test_garbage_rejected(self, tokens):
        with pytest.raises(InvalidTokenException) as exc_info:
            await tokens.verify_access_token("not.a.jwt")
        assert exc_info.value.detail == "Invalid or expired token."

    async def test_missing_public_key_fails_closed(self, key_paths, tmp_path):
        signer = TokenManager(KeyMaterialProvider(key_paths["private"]), issuer="iss", audience="aud")
        token, _ = signer.create_access_token(USER_ID, "dev-A")

        verifier = TokenManager(
            KeyMaterialProvider(key_paths["private"], str(tmp_path / "missing.pem")),
            issuer="iss",
            audience="aud",
        )
        with pytest.raises(InvalidTokenException) as exc_info:
            await verifier.verify_access_token(token)
        assert exc_info.value.reason == "verification key unavailable"

    async def test_no_verification_key_configured_fails_closed(self, key_paths):
        signer = TokenManager(KeyMaterialProvider(key_paths["private"], None), issuer="iss", audience="aud")
        token, _ = signer.create_access_token(USER_ID, "dev-A")

        with pytest.raises(InvalidTokenException):
            await signer.verify_access_token(token)


class TestSigning:
    def test_missing_private_key_raises(self, tmp_path):
        manager = TokenManager(KeyMaterialProvider(str(tmp_path / "nope.pem")), issuer="iss", audience="aud")

        with pytest.raises(KeyMaterialException):
            manager.create_access_token(USER_ID, "dev-A")

    def test_key_id_in_header(self, key_paths):
        manager = TokenManager(
            KeyMaterialProvider(key_paths["private"], key_paths["public"]),
            issuer="iss",
            audience="aud",
            key_id="key-1",
        )
        token, _ = manager.create_access_token(USER_ID, "dev-A")

        header = jwt.get_unverified_header(token)
        assert header["kid"] == "key-1"
        assert header["alg"] == "RS256"


class TestPasswordHashing:
    async def test_hash_is_not_plaintext(self):
        hashed = await TokenManager.hash_password("CorrectHorse1")

        assert hashed != "CorrectHorse1"
        assert await TokenManager.verify_password("CorrectHorse1", hashed)
        assert not await TokenManager.verify_password("wrong", hashed)
