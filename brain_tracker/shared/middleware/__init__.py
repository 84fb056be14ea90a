# brain_tracker/shared/middleware/__init__.py

from brain_tracker.shared.middleware.exception_middleware import AsyncExceptionMiddleware
from brain_tracker.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware
from brain_tracker.shared.middleware.rate_limiting_middleware import AsyncRateLimitingMiddleware
from brain_tracker.shared.middleware.security_headers_middleware import AsyncSecurityHeadersMiddleware
from brain_tracker.shared.middleware.fingerprint_middleware import AsyncDeviceFingerprintMiddleware
from brain_tracker.shared.middleware.auth_middleware import AsyncAccessTokenMiddleware

# Export all for easy imports
__all__ = [
    "AsyncExceptionMiddleware",
    "AsyncRequestLoggingMiddleware",
    "AsyncRateLimitingMiddleware",
    "AsyncSecurityHeadersMiddleware",
    "AsyncDeviceFingerprintMiddleware",
    "AsyncAccessTokenMiddleware",
]
