# brain_tracker/domain/models/refresh_token_domain_model.py

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import UUID, uuid4

METADATA_MAX_KEYS = 16
METADATA_MAX_VALUE_LENGTH = 256
METADATA_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")


def validate_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    """
    Check the auxiliary key-value bag attached to a refresh record.

    Raises:
        ValueError: If the bag has too many keys, a bad key or a value
            that is not a short string
    """
    if not metadata:
        return {}
    if len(metadata) > METADATA_MAX_KEYS:
        raise ValueError(f"metadata accepts at most {METADATA_MAX_KEYS} keys")
    for key, value in metadata.items():
        if not isinstance(key, str) or not METADATA_KEY_PATTERN.match(key):
            raise ValueError(f"invalid metadata key: {key!r}")
        if not isinstance(value, str) or len(value) > METADATA_MAX_VALUE_LENGTH:
            raise ValueError(f"metadata value for {key!r} must be a string of at most "
                             f"{METADATA_MAX_VALUE_LENGTH} characters")
    return dict(metadata)


@dataclass
class RefreshTokenRecord:
    """
    Domain model for a persisted refresh token.

    Only the SHA-256 hash of the raw token is ever held here.
    """
    token_hash: str
    user_id: str
    device: str
    expires_at: datetime
    consumed: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        self.metadata = validate_metadata(self.metadata)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now
