import math
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
import logging

from passshare.domain.interfaces import RateLimitBackend, RateLimitResult, rate_limit_key

logger = logging.getLogger(__name__)

ENDPOINT_SHARE = "share"
ENDPOINT_RETRIEVE = "retrieve"


class RateLimiter:
    """Fixed-window request counter per (endpoint class, client identifier).

    Fails closed: if the backend cannot be reached the request is denied.
    """

    def __init__(self, backend: RateLimitBackend, clock: Optional[Callable[[], datetime]] = None):
        self.backend = backend
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    async def check(
        self,
        identifier: str,
        endpoint_class: str,
        limit: int,
        window_seconds: int = 60,
    ) -> RateLimitResult:
        if not identifier:
            raise ValueError("Rate limit identifier must not be empty")

        key = rate_limit_key(endpoint_class, identifier)
        now = self.clock()

        try:
            current, ttl = await self.backend.increment(key, window_seconds)
        except Exception as e:
            logger.error(f"Rate limiter backend error ({endpoint_class}): {type(e).__name__}")
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=now + timedelta(seconds=window_seconds),
                limit=limit,
            )

        if ttl < 0:
            ttl = window_seconds
        reset_at = now + timedelta(seconds=ttl)

        if current > limit:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at, limit=limit)

        return RateLimitResult(
            allowed=True,
            remaining=max(0, limit - current),
            reset_at=reset_at,
            limit=limit,
        )


def reset_time_ms(result: RateLimitResult) -> int:
    return int(result.reset_at.timestamp() * 1000)


def rate_limit_headers(result: RateLimitResult, now: Optional[float] = None) -> Dict[str, str]:
    """Generate rate limit headers for response."""
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(reset_time_ms(result)),
    }

    if not result.allowed:
        now = time.time() if now is None else now
        headers["Retry-After"] = str(max(1, math.ceil(result.reset_at.timestamp() - now)))

    return headers
