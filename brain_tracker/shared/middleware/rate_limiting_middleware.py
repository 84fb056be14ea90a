# brain_tracker/shared/middleware/rate_limiting_middleware.py

"""
Middleware for request rate limiting.

Limits requests per client IP, with a tighter budget on the credential and
token endpoints. Repeated 401s on those endpoints block the client for a
while.
"""

import time
from datetime import datetime
import logging
from typing import Dict, Tuple, List, Set, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from brain_tracker.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

SENSITIVE_ROUTES = {
    "/api/v1/auth/login",
    "/api/v1/auth/refresh",
    "/api/v1/auth/logout",
    "/api/v1/users/register",
}


class AsyncRateLimiter:
    """
    In-memory rate limiting by IP with different limits for default and
    sensitive routes.
    """

    def __init__(
            self,
            default_limit: int = 100,
            sensitive_limit: int = 10,
            auth_failure_limit: int = 5,
            sensitive_routes: Optional[Set[str]] = None,
    ):
        # Structure: {ip: [(timestamp1, path1), (timestamp2, path2), ...]}
        self.requests: Dict[str, List[Tuple[float, str]]] = {}

        # 60-second window
        self.window_time = 60
        self.default_limit = default_limit
        self.sensitive_limit = sensitive_limit
        self.sensitive_routes: Set[str] = set(sensitive_routes or SENSITIVE_ROUTES)

        # Structure: {ip: release_timestamp}
        self.blocked_ips: Dict[str, float] = {}

        # 5 minutes
        self.block_duration = 300

        # Structure: {ip: [(timestamp1, path1), ...]}
        self.auth_failures: Dict[str, List[Tuple[float, str]]] = {}
        self.auth_failure_limit = auth_failure_limit

        # 10 minutes
        self.auth_block_duration = 600

    def reset(self):
        """Forget all counters and blocks."""
        self.requests.clear()
        self.blocked_ips.clear()
        self.auth_failures.clear()

    def is_sensitive(self, path: str) -> bool:
        return any(path.startswith(route) for route in self.sensitive_routes)

    def _clean_old_requests(self, ip: str):
        """Remove old requests outside the time window."""
        if ip not in self.requests:
            return

        cutoff_time = time.time() - self.window_time
        self.requests[ip] = [
            (timestamp, path) for timestamp, path in self.requests[ip]
            if timestamp > cutoff_time
        ]

        if not self.requests[ip]:
            del self.requests[ip]

    def _clean_old_auth_failures(self, ip: str):
        """Remove old authentication failures outside the time window."""
        if ip not in self.auth_failures:
            return

        cutoff_time = time.time() - (self.window_time * 5)  # 5-minute window for auth failures
        self.auth_failures[ip] = [
            (timestamp, path) for timestamp, path in self.auth_failures[ip]
            if timestamp > cutoff_time
        ]

        if not self.auth_failures[ip]:
            del self.auth_failures[ip]

    def _clean_expired_blocks(self):
        """Remove IPs whose block has expired."""
        current_time = time.time()
        expired_ips = [ip for ip, block_until in self.blocked_ips.items()
                       if block_until <= current_time]

        for ip in expired_ips:
            del self.blocked_ips[ip]

    def is_blocked(self, ip: str) -> bool:
        """Check if an IP is temporarily blocked."""
        self._clean_expired_blocks()
        return ip in self.blocked_ips

    async def add_auth_failure(self, ip: str, path: str):
        """
        Register an authentication failure for an IP.

        Args:
            ip: Client IP address
            path: Request path
        """
        self.auth_failures.setdefault(ip, []).append((time.time(), path))
        self._clean_old_auth_failures(ip)

        if len(self.auth_failures.get(ip, [])) >= self.auth_failure_limit:
            await self.block_ip(ip, is_auth_failure=True)

    async def block_ip(self, ip: str, is_auth_failure: bool = False):
        """
        Temporarily block an IP.

        Args:
            ip: Client IP address
            is_auth_failure: If the block is due to authentication failures
        """
        duration = self.auth_block_duration if is_auth_failure else self.block_duration
        block_until = time.time() + duration
        self.blocked_ips[ip] = block_until

        block_type = "authentication failures" if is_auth_failure else "excessive requests"
        logger.warning(
            f"IP {ip} blocked due to {block_type} until {datetime.fromtimestamp(block_until).strftime('%Y-%m-%d %H:%M:%S')}"
        )

    async def is_rate_limited(self, ip: str, path: str) -> Tuple[bool, Optional[int]]:
        """
        Check if an IP has exceeded the request limit.

        Returns:
            Tuple (is_limited, remaining_requests)
            - is_limited: True if the IP exceeded the limit
            - remaining_requests: Number of remaining requests or None if blocked
        """
        if self.is_blocked(ip):
            return True, None

        self._clean_old_requests(ip)
        history = self.requests.setdefault(ip, [])

        is_sensitive = self.is_sensitive(path)
        limit = self.sensitive_limit if is_sensitive else self.default_limit

        if is_sensitive:
            count = sum(1 for _, req_path in history if self.is_sensitive(req_path))
        else:
            count = len(history)

        if count >= limit:
            # Far over the limit on a sensitive route: block the IP
            if is_sensitive and count >= limit * 2:
                await self.block_ip(ip)
            return True, 0

        history.append((time.time(), path))
        return False, limit - count - 1


# Global rate limiter instance
async_rate_limiter = AsyncRateLimiter(
    default_limit=settings.RATE_LIMIT_DEFAULT_PER_MINUTE,
    sensitive_limit=settings.RATE_LIMIT_SENSITIVE_PER_MINUTE,
    auth_failure_limit=settings.RATE_LIMIT_AUTH_FAILURE_LIMIT,
)


class AsyncRateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that limits the number of requests by IP.
    """

    def __init__(self, app, limiter: AsyncRateLimiter = async_rate_limiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        if path in ["/docs", "/redoc", "/openapi.json", "/health"]:
            return await call_next(request)

        is_limited, remaining = await self.limiter.is_rate_limited(client_ip, path)

        if is_limited:
            logger.warning(f"Rate limit exceeded for IP: {client_ip} on path: {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Too many requests. Try again later.",
                    "code": "RATE_LIMIT_EXCEEDED"
                },
                headers={"Retry-After": "60"}
            )

        response = await call_next(request)

        if remaining is not None:
            response.headers["X-RateLimit-Remaining"] = str(remaining)

        # Failed credential or token exchanges count towards a block
        if response.status_code == 401 and self.limiter.is_sensitive(path):
            await self.limiter.add_auth_failure(client_ip, path)

        return response
