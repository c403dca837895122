"""Redis Adapter - Connection and key helpers."""
import redis.asyncio as redis


def create_redis_client(redis_url: str, timeout_seconds: float = 2.0) -> redis.Redis:
    """Build a client with bounded socket timeouts.

    The caller owns the client; it is kept on ``app.state`` for the lifetime of
    the application and closed on shutdown.
    """
    return redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


async def close_redis_client(client: redis.Redis) -> None:
    await client.aclose()

