"""Per-client rate limiting using a sliding window."""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from fastapi import Request

from turfhub.config import settings


class RateLimitType(str, Enum):
    """Rate limit buckets for endpoint categories."""

    # Credential checks and anything that sends email
    AUTH = "auth"
    # Authenticated account management
    ACCOUNT = "account"


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit type."""

    requests: int
    window_seconds: int


def get_rate_limit_config() -> dict[RateLimitType, RateLimitConfig]:
    """Limits per bucket, read from settings."""
    return {
        RateLimitType.AUTH: RateLimitConfig(
            requests=settings.auth_rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        RateLimitType.ACCOUNT: RateLimitConfig(
            requests=settings.account_rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
    }


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    success: bool
    limit: int
    remaining: int
    reset: int  # Unix timestamp in seconds


class InMemoryRateLimiter:
    """In-memory sliding window limiter.

    Suitable for a single process only; counters are not shared between
    workers.
    """

    def __init__(self) -> None:
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._last_prune = time.time()

    def _prune(self, now: float) -> None:
        """Forget identifiers with no request inside the longest window."""
        longest = max(c.window_seconds for c in get_rate_limit_config().values())
        horizon = now - longest
        stale = [
            key for key, stamps in self._requests.items() if not stamps or stamps[-1] <= horizon
        ]
        for key in stale:
            del self._requests[key]
        self._last_prune = now

    async def check(self, identifier: str, limit_type: RateLimitType) -> RateLimitResult:
        """Record a request for ``identifier`` and report whether it is allowed."""
        config = get_rate_limit_config()[limit_type]
        key = f"{limit_type.value}:{identifier}"
        now = time.time()
        window_start = now - config.window_seconds

        async with self._lock:
            if now - self._last_prune >= config.window_seconds:
                self._prune(now)

            timestamps = [t for t in self._requests[key] if t > window_start]
            self._requests[key] = timestamps

            if len(timestamps) >= config.requests:
                oldest = min(timestamps) if timestamps else now
                return RateLimitResult(
                    success=False,
                    limit=config.requests,
                    remaining=0,
                    reset=int(oldest + config.window_seconds),
                )

            timestamps.append(now)
            return RateLimitResult(
                success=True,
                limit=config.requests,
                remaining=config.requests - len(timestamps),
                reset=int(now + config.window_seconds),
            )

    def reset(self) -> None:
        """Forget every counter. Used by tests."""
        self._requests.clear()


_rate_limiter = InMemoryRateLimiter()


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get the global rate limiter instance."""
    return _rate_limiter


def get_client_ip(request: Request) -> str | None:
    """Extract client IP, honouring common proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Comma-separated chain, the first entry is the client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return None


async def check_rate_limit(request: Request, limit_type: RateLimitType) -> RateLimitResult:
    """Check the limit for the client making ``request``."""
    identifier = f"ip:{get_client_ip(request) or 'unknown'}"
    return await get_rate_limiter().check(identifier, limit_type)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers describing the limit state of a response."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }

    if not result.success:
        headers["Retry-After"] = str(max(0, result.reset - int(time.time())))

    return headers
