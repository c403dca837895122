"""Memory Store Implementations.

Single-process stand-ins for Redis used in dev mode and tests. State lives on
the instance, so each application (or test) owns its own store. Expired
entries are dropped on every write against an injectable monotonic clock.
"""
import asyncio
import math
import time
from typing import Callable, Dict, Optional, Tuple
import logging

from passshare.domain.interfaces import SecretBackend, RateLimitBackend

logger = logging.getLogger(__name__)


def _purge_expired(table: Dict[str, Tuple[object, float]], now: float) -> int:
    """Drop entries whose expiry has passed. Caller holds the store lock."""
    expired = [key for key, (_, expires_at) in table.items() if expires_at <= now]
    for key in expired:
        del table[key]
    return len(expired)


class MemorySecretBackend(SecretBackend):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        # key -> (value, expires_at)
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            now = self._clock()
            purged = _purge_expired(self._entries, now)
            if purged:
                logger.debug(f"Purged {purged} expired secrets")
            self._entries[key] = (value, now + ttl_seconds)

    async def get_and_delete(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= self._clock():
                return None
            return value

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for _, expires_at in self._entries.values() if expires_at > now)


class MemoryRateLimitBackend(RateLimitBackend):
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        # key -> (count, expires_at)
        self._counters: Dict[str, Tuple[int, float]] = {}

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        async with self._lock:
            now = self._clock()
            # Closed windows would otherwise pile up, one per identifier seen
            _purge_expired(self._counters, now)

            count, expires_at = self._counters.get(key, (0, now + window_seconds))
            count += 1
            self._counters[key] = (count, expires_at)
            return count, max(0, math.ceil(expires_at - now))
