# brain_tracker/shared/middleware/fingerprint_middleware.py

"""
Device fingerprinting.

Derives a stable identifier for the calling device and stores it on
``request.state.fingerprint`` for the token binding check and the
login/refresh routes.
"""

import hashlib
import logging
from typing import Mapping, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from brain_tracker.shared.utils.input_validation import InputValidator

logger = logging.getLogger(__name__)

FINGERPRINT_HEADER = "x-device-fingerprint"
FINGERPRINT_SOURCE_HEADERS = ("user-agent", "accept", "accept-language", "accept-encoding")


def compute_fingerprint(headers: Mapping[str, str]) -> Optional[str]:
    """
    Return the device fingerprint for a set of request headers.

    An explicit ``X-Device-Fingerprint`` header is used as is when it is
    well formed. Otherwise the fingerprint is the SHA-256 of the user agent
    and accept headers; with none of them present there is no fingerprint.
    """
    explicit = headers.get(FINGERPRINT_HEADER)
    if explicit:
        explicit = explicit.strip()
        is_valid, error_msg = InputValidator.validate_fingerprint(explicit)
        if is_valid:
            return explicit
        logger.warning(f"Ignoring malformed device fingerprint header: {error_msg}")

    parts = [headers.get(name, "").strip() for name in FINGERPRINT_SOURCE_HEADERS]
    if not any(parts):
        return None
    return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()


class AsyncDeviceFingerprintMiddleware(BaseHTTPMiddleware):
    """
    Attaches the device fingerprint to every request.
    Must run before the access token middleware.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.fingerprint = compute_fingerprint(request.headers)
        return await call_next(request)
