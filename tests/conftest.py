import asyncio
import inspect
import os
import sys
import tempfile
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Key material and settings must exist before the application is imported
_test_tmp_dir = tempfile.mkdtemp(prefix="brain_tracker_test_")


def _write_rsa_keypair(directory: str, name: str):
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = os.path.join(directory, f"{name}_private.pem")
    public_path = os.path.join(directory, f"{name}_public.pem")
    with open(private_path, "wb") as f:
        f.write(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ))
    with open(public_path, "wb") as f:
        f.write(key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ))
    return private_path, public_path


PRIVATE_KEY_PATH, PUBLIC_KEY_PATH = _write_rsa_keypair(_test_tmp_dir, "signing")
OTHER_PRIVATE_KEY_PATH, OTHER_PUBLIC_KEY_PATH = _write_rsa_keypair(_test_tmp_dir, "other")

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("USE_MEMORY_STORE", "true")
os.environ.setdefault("JWT_PRIVATE_KEY_PATH", PRIVATE_KEY_PATH)
os.environ.setdefault("JWT_PUBLIC_KEY_PATH", PUBLIC_KEY_PATH)
os.environ.setdefault("JWT_ISSUER", "https://issuer.test/")
os.environ.setdefault("JWT_AUDIENCE", "brain-tracker-test")
os.environ.setdefault("RATE_LIMIT_DEFAULT_PER_MINUTE", "10000")
os.environ.setdefault("RATE_LIMIT_SENSITIVE_PER_MINUTE", "10000")
os.environ.setdefault("RATE_LIMIT_AUTH_FAILURE_LIMIT", "10000")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from brain_tracker.adapters.outbound.persistence.repositories import (  # noqa: E402
    memory_refresh_token_repository,
    memory_user_repository,
)
from brain_tracker.adapters.outbound.security.token_manager import TokenManager  # noqa: E402
from brain_tracker.shared.middleware.rate_limiting_middleware import async_rate_limiter  # noqa: E402

ISSUER = os.environ["JWT_ISSUER"]
AUDIENCE = os.environ["JWT_AUDIENCE"]

# Minimum bcrypt cost keeps the suite fast
TokenManager.crypt_context.update(bcrypt__rounds=4)


def reset_stores():
    memory_refresh_token_repository.records.clear()
    memory_user_repository.users.clear()
    async_rate_limiter.reset()


@pytest.fixture(autouse=True)
def reset_runtime_state():
    reset_stores()
    yield
    reset_stores()


def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames
            if name in pyfuncitem.funcargs
        }
        asyncio.run(pyfuncitem.obj(**call_kwargs))
        return True
    return None


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def key_paths():
    return {
        "private": PRIVATE_KEY_PATH,
        "public": PUBLIC_KEY_PATH,
        "other_private": OTHER_PRIVATE_KEY_PATH,
        "other_public": OTHER_PUBLIC_KEY_PATH,
    }


@pytest.fixture
def tokens(key_paths):
    """Token manager signing and verifying with the test key pair."""
    from brain_tracker.adapters.outbound.security.key_provider import KeyMaterialProvider

    return TokenManager(
        key_provider=KeyMaterialProvider(key_paths["private"], key_paths["public"]),
        issuer=ISSUER,
        audience=AUDIENCE,
    )
