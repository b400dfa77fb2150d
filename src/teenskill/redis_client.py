"""Optional Redis connection pool.

Redis only backs the rate limiter. When ``redis_url`` is empty the pool is
never created and callers treat that as "rate limiting off".
"""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the pool. Connections are lazy, so this does not touch the network."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        socket_connect_timeout=0.5,
        socket_timeout=0.5,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def redis_enabled() -> bool:
    return _pool is not None


def get_redis() -> redis.Redis:
    """Get the Redis client. Raises RuntimeError when Redis is not configured."""
    if _pool is None:
        msg = "Redis not configured"
        raise RuntimeError(msg)
    return _pool
