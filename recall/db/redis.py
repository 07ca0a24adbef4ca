"""
Redis connection management.

Provides the async Redis client used for:
- Rate limiting (shared counters across API processes)
- Celery broker/backend (configured separately in recall.workers)
"""

import time

from redis.asyncio import ConnectionPool, Redis

from recall.core.logging import get_logger

logger = get_logger(__name__)


async def create_redis(redis_url: str) -> Redis:
    """
    Create a Redis client backed by its own connection pool and ping it.

    Called once during application startup; the caller owns the client
    and must close it with close_redis().

    Raises:
        redis.exceptions.ConnectionError: If Redis is unreachable
    """
    logger.info("initializing_redis_pool", url=redis_url.split("@")[-1])

    pool = ConnectionPool.from_url(
        redis_url,
        decode_responses=True,
        max_connections=20,
        socket_connect_timeout=5,
        socket_keepalive=True,
    )
    client = Redis(connection_pool=pool)

    try:
        await client.ping()
        logger.info("redis_connection_successful")
    except Exception as e:
        logger.error("redis_connection_failed", error=str(e))
        await client.aclose()
        raise

    return client


async def close_redis(client: Redis) -> None:
    """Close the client and disconnect its pool."""
    logger.info("closing_redis_connection")
    await client.aclose()
    await client.connection_pool.disconnect()


# ========================================
# Rate Limiting Helper
# ========================================

class RedisRateLimiter:
    """
    Fixed-window rate limiter using Redis.

    Each (key, window) pair gets its own counter:

        rate_limit:{key}:{window_number}

    The first hit in a window creates the counter with a TTL of one window
    length, so stale windows expire on their own. Every API process shares the
    same counters.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    async def hit(
        self,
        key: str,
        max_requests: int,
        window_seconds: int
    ) -> tuple[bool, int, int]:
        """
        Count one request against the current window.

        Args:
            key: Limiter key (e.g. "ip:203.0.113.7")
            max_requests: Maximum requests allowed per window
            window_seconds: Window length in seconds

        Returns:
            (is_allowed, remaining, seconds_until_reset)
        """
        now = time.time()
        window = int(now // window_seconds)
        reset_in = int((window + 1) * window_seconds - now) or 1
        rate_key = f"rate_limit:{key}:{window}"

        async with self.redis.pipeline(transaction=True) as pipe:
            # Create the counter with its TTL only if this is the first hit
            pipe.set(rate_key, 0, ex=window_seconds, nx=True)
            pipe.incr(rate_key)
            _, count = await pipe.execute()

        count = int(count)
        remaining = max(0, max_requests - count)
        return (count <= max_requests, remaining, reset_in)
