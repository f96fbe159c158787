"""
Redis connection management.

Provides the async Redis connection used for:
- Rate limiting (sliding window per user / per IP)
- Celery broker/backend (configured separately in workers.celery_app)
"""

import time
import uuid
from typing import Optional

from redis.asyncio import ConnectionPool, Redis

from vidtube.core.config import settings
from vidtube.core.logging import get_logger

logger = get_logger(__name__)

# Global connection pool
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """
    Initialize the Redis connection pool.

    Called lazily on first use and during application startup.
    """
    global _redis_pool, _redis_client

    if _redis_pool is None:
        logger.info("initializing_redis_pool")

        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=20,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        _redis_client = Redis(connection_pool=_redis_pool)

        try:
            await _redis_client.ping()
            logger.info("redis_connection_successful")
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            _redis_pool = None
            raise

    return _redis_client


async def get_redis() -> Redis:
    """Get the Redis client, connecting on first use."""
    if _redis_client is None:
        return await init_redis()
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection pool. Called during application shutdown."""
    global _redis_pool, _redis_client

    if _redis_client:
        logger.info("closing_redis_connection")
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None


# ========================================
# Rate Limiting Helper
# ========================================

class RedisRateLimiter:
    """
    Sliding-window rate limiter.

    Each key is a sorted set of request timestamps. Entries older than the
    window are trimmed before counting, so the limit applies to any rolling
    ``window_seconds`` span rather than to fixed clock minutes.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    @staticmethod
    def _key(key: str) -> str:
        return f"rate_limit:{key}"

    async def _count(self, rate_key: str, window_seconds: int) -> int:
        window_start = time.time() - window_seconds
        await self.redis.zremrangebyscore(rate_key, 0, window_start)
        return await self.redis.zcard(rate_key)

    async def is_allowed(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> tuple[bool, int]:
        """
        Check if a request is allowed and record it when it is.

        Returns:
            (is_allowed, current_count)
        """
        rate_key = self._key(key)
        current_count = await self._count(rate_key, window_seconds)

        if current_count >= max_requests:
            return (False, current_count)

        now = time.time()
        # Unique member: two requests in the same microsecond both count
        await self.redis.zadd(rate_key, {f"{now}:{uuid.uuid4().hex}": now})
        await self.redis.expire(rate_key, window_seconds)
        return (True, current_count + 1)

    async def get_remaining(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> int:
        """Get remaining requests in the current window."""
        current_count = await self._count(self._key(key), window_seconds)
        return max(0, max_requests - current_count)

    async def reset(self, key: str) -> None:
        await self.redis.delete(self._key(key))


# ========================================
# Health Check
# ========================================

async def check_redis_health() -> bool:
    """Return True when Redis answers PING."""
    try:
        redis = await get_redis()
        return await redis.ping() is True
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return False
