# brain_tracker/adapters/configuration/config.py

import json
from typing import Annotated, Optional, List, Union
from logging import getLevelName
from pydantic import Field, PostgresDsn, field_validator, ConfigDict
from pydantic_settings import BaseSettings, NoDecode

# Lifetimes are part of the token contract and are not configurable.
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 30

ASYMMETRIC_ALGORITHMS = ("RS256", "RS384", "RS512", "PS256", "PS384", "PS512", "ES256", "ES384", "ES512")


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Environment
    ENVIRONMENT: str = "development"  # "development", "production", "testing"

    # Database
    DB_DRIVER: str = "asyncpg"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "cs_brain_tracker"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[PostgresDsn] = Field(None, validate_default=True)
    USE_MEMORY_STORE: bool = False

    # Connection retry with exponential backoff
    DB_CONNECT_MAX_RETRIES: int = 5
    DB_CONNECT_BASE_DELAY_SECONDS: float = 1.0
    DB_CONNECT_BACKOFF_MULTIPLIER: float = 2.0

    # JWT
    JWT_ISSUER: str = "https://cs-brain-tracker.local/"
    JWT_AUDIENCE: str = "cs-brain-tracker-api"
    JWT_ALGORITHM: str = "RS256"
    JWT_PRIVATE_KEY_PATH: str = "keys/private.key"
    JWT_PUBLIC_KEY_PATH: Optional[str] = "keys/public.key"
    JWT_KEY_ID: Optional[str] = None

    # Remote key set
    JWKS_URI: Optional[str] = None
    JWKS_REQUESTS_PER_MINUTE: int = 5
    JWKS_CACHE_MAX_ENTRIES: int = 5
    JWKS_FETCH_TIMEOUT_SECONDS: float = 5.0

    # Token policy
    REQUIRE_DEVICE_FINGERPRINT: bool = False
    LOGOUT_IDEMPOTENT: bool = False
    REFRESH_TOKEN_CLEANUP_INTERVAL_SECONDS: int = 3600

    # Routes that skip access token verification
    PUBLIC_PATH_PATTERNS: Annotated[List[str], NoDecode] = [
        r"/auth/login$",
        r"/auth/refresh$",
        r"/auth/logout$",
        r"/users/register$",
        r"/auth/(google|github|discord)(/callback)?$",
        r"/health$",
        r"^(?!/api)",
    ]

    # Rate limiting
    RATE_LIMIT_DEFAULT_PER_MINUTE: int = 100
    RATE_LIMIT_SENSITIVE_PER_MINUTE: int = 10
    RATE_LIMIT_AUTH_FAILURE_LIMIT: int = 5

    # CORS
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("DATABASE_URL", mode="before")
    def assemble_db_url(cls, value, info):
        if value:
            return value

        data = info.data
        return PostgresDsn.build(
            scheme=f"postgresql+{data.get('DB_DRIVER', 'asyncpg')}",
            username=data["POSTGRES_USER"],
            password=data["POSTGRES_PASSWORD"],
            host=data["POSTGRES_HOST"],
            port=data["POSTGRES_PORT"],
            path=data["POSTGRES_DB"],
        )

    @field_validator("ALLOWED_ORIGINS", "PUBLIC_PATH_PATTERNS", mode="before")
    def assemble_list(cls, v: Union[str, List[str]]) -> List[str]:
        """
        Accept a CSV string ('a,b,c') as well as a list or a JSON array.
        """
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list):
            return v
        raise ValueError(f"Invalid list value: {v!r}")

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Make sure the value is a valid logging level."""
        lvl = v.upper()
        if not isinstance(getLevelName(lvl), int):
            raise ValueError(f"Invalid LOG_LEVEL: {v!r}")
        return lvl

    @field_validator("JWT_ALGORITHM", mode="before")
    def validate_algorithm(cls, v: str) -> str:
        """Only asymmetric signature algorithms are accepted."""
        alg = v.upper()
        if alg not in ASYMMETRIC_ALGORITHMS:
            raise ValueError(f"JWT_ALGORITHM must be an asymmetric algorithm, got {v!r}")
        return alg

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
