"""Redis Store Implementations."""
from typing import Optional, Tuple
import logging

from passshare.domain.interfaces import SecretBackend, RateLimitBackend

logger = logging.getLogger(__name__)

# INCR and the window expiry run in one script so concurrent first requests
# cannot each think they opened the window. A counter that somehow lost its
# TTL (-1) gets one again instead of living forever.
FIXED_WINDOW_LUA = """
local current = redis.call('INCR', KEYS[1])
local ttl = redis.call('TTL', KEYS[1])
if current == 1 or ttl < 0 then
    redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
    ttl = tonumber(ARGV[1])
end
return {current, ttl}
"""


class RedisSecretBackend(SecretBackend):
    def __init__(self, redis_client):
        self.redis = redis_client

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        # SET with EX: value and expiry land together or not at all
        ok = await self.redis.set(key, value, ex=ttl_seconds)
        if not ok:
            raise RuntimeError("Redis SET was not acknowledged")

    async def get_and_delete(self, key: str) -> Optional[str]:
        return await self.redis.getdel(key)

    async def ping(self) -> bool:
        return bool(await self.redis.ping())


class RedisRateLimitBackend(RateLimitBackend):
    def __init__(self, redis_client):
        self.redis = redis_client

    async def increment(self, key: str, window_seconds: int) -> Tuple[int, int]:
        result = await self.redis.eval(FIXED_WINDOW_LUA, 1, key, window_seconds)
        return int(result[0]), int(result[1])
