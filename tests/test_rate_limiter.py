import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

from passshare.adapters.memory_store.stores import MemoryRateLimitBackend
from passshare.adapters.redis.stores import FIXED_WINDOW_LUA, RedisRateLimitBackend
from passshare.core.rate_limiter import (
    ENDPOINT_RETRIEVE, ENDPOINT_SHARE, RateLimiter, rate_limit_headers,
)
from passshare.domain.interfaces import rate_limit_key

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def limiter(clock):
    return RateLimiter(MemoryRateLimitBackend(clock=clock), clock=lambda: NOW)


@pytest.mark.asyncio
async def test_memory_rate_limiter_fixed_window(limiter):
    remaining = []
    for _ in range(10):
        result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60)
        assert result.allowed is True
        remaining.append(result.remaining)

    assert remaining == list(range(9, -1, -1))

    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60)
    assert result.allowed is False
    assert result.remaining == 0
    assert result.reset_at == NOW + timedelta(seconds=60)


@pytest.mark.asyncio
async def test_window_resets_after_expiry(limiter, clock):
    for _ in range(3):
        await limiter.check("1.2.3.4", ENDPOINT_SHARE, 2, 60)
    assert (await limiter.check("1.2.3.4", ENDPOINT_SHARE, 2, 60)).allowed is False

    clock.advance(30)
    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 2, 60)
    assert result.allowed is False
    assert result.reset_at == NOW + timedelta(seconds=30)

    clock.advance(30)
    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 2, 60)
    assert result.allowed is True
    assert result.remaining == 1


@pytest.mark.asyncio
async def test_closed_windows_are_purged_from_memory(clock):
    backend = MemoryRateLimitBackend(clock=clock)
    for i in range(1000):
        await backend.increment(rate_limit_key(ENDPOINT_SHARE, f"10.0.{i // 256}.{i % 256}"), 60)
    assert len(backend._counters) == 1000

    clock.advance(3600)
    await backend.increment(rate_limit_key(ENDPOINT_SHARE, "10.9.9.9"), 60)

    assert list(backend._counters) == ["rate_limit:share:10.9.9.9"]


@pytest.mark.asyncio
async def test_identifiers_are_independent(limiter):
    for _ in range(11):
        await limiter.check("attacker", ENDPOINT_SHARE, 10, 60)

    result = await limiter.check("bystander", ENDPOINT_SHARE, 10, 60)
    assert result.allowed is True
    assert result.remaining == 9


@pytest.mark.asyncio
async def test_endpoint_classes_are_independent(limiter):
    for _ in range(11):
        await limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60)

    result = await limiter.check("1.2.3.4", ENDPOINT_RETRIEVE, 20, 60)
    assert result.allowed is True
    assert result.remaining == 19


@pytest.mark.asyncio
async def test_concurrent_checks_never_exceed_limit(limiter):
    results = await asyncio.gather(*(limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60) for _ in range(50)))
    assert sum(r.allowed for r in results) == 10


@pytest.mark.asyncio
async def test_empty_identifier_rejected(limiter):
    with pytest.raises(ValueError):
        await limiter.check("", ENDPOINT_SHARE, 10, 60)


@pytest.mark.asyncio
async def test_backend_failure_fails_closed():
    backend = MagicMock()
    backend.increment = AsyncMock(side_effect=ConnectionError("Redis connection lost"))
    limiter = RateLimiter(backend, clock=lambda: NOW)

    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60)
    assert result.allowed is False
    assert result.remaining == 0
    assert result.reset_at == NOW + timedelta(seconds=60)


@pytest.mark.asyncio
async def test_redis_rate_limiter_lua():
    mock_redis = MagicMock()
    mock_redis.eval = AsyncMock(return_value=[1, 60])

    limiter = RateLimiter(RedisRateLimitBackend(mock_redis), clock=lambda: NOW)
    result = await limiter.check("1.2.3.4", ENDPOINT_RETRIEVE, 20, 60)

    assert result.allowed is True
    assert result.remaining == 19
    mock_redis.eval.assert_awaited_once_with(FIXED_WINDOW_LUA, 1, "rate_limit:retrieve:1.2.3.4", 60)

    # Over the limit, 12 seconds left in the window
    mock_redis.eval.return_value = [21, 12]
    result = await limiter.check("1.2.3.4", ENDPOINT_RETRIEVE, 20, 60)
    assert result.allowed is False
    assert result.remaining == 0
    assert result.reset_at == NOW + timedelta(seconds=12)


@pytest.mark.asyncio
async def test_negative_ttl_falls_back_to_window():
    mock_redis = MagicMock()
    mock_redis.eval = AsyncMock(return_value=[3, -1])

    limiter = RateLimiter(RedisRateLimitBackend(mock_redis), clock=lambda: NOW)
    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 10, 60)
    assert result.reset_at == NOW + timedelta(seconds=60)


@pytest.mark.asyncio
async def test_headers(limiter):
    result = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 1, 60)
    headers = rate_limit_headers(result)
    assert headers["X-RateLimit-Limit"] == "1"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["X-RateLimit-Reset"] == str(int((NOW + timedelta(seconds=60)).timestamp() * 1000))
    assert "Retry-After" not in headers

    denied = await limiter.check("1.2.3.4", ENDPOINT_SHARE, 1, 60)
    headers = rate_limit_headers(denied, now=NOW.timestamp())
    assert headers["Retry-After"] == "60"
