"""
Redis Cache Module

Optional short-lived cache for complete dashboard summaries. Polling
consumers tolerate data a few seconds stale, so a small TTL absorbs bursts
of identical requests. Partial aggregates are never cached.
"""

import json
from typing import Any, Optional, Union
from datetime import timedelta

import structlog
from redis.asyncio import Redis, ConnectionPool

from src.config import get_settings

logger = structlog.get_logger(__name__)

# Global Redis connection
_redis_pool: Optional[ConnectionPool] = None
_redis_client: Optional[Redis] = None


async def init_redis() -> Redis:
    """Initialize Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    _redis_pool = ConnectionPool.from_url(
        settings.redis.get_url(),
        max_connections=settings.redis.max_connections,
        socket_timeout=settings.redis.socket_timeout,
        decode_responses=True,
    )
    _redis_client = Redis(connection_pool=_redis_pool)

    try:
        await _redis_client.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.error("Redis connection failed", error=str(e))
        await close_redis()
        raise

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection pool"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None

    logger.info("Redis connection closed")


def get_redis() -> Redis:
    """Get Redis client instance"""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def is_redis_ready() -> bool:
    return _redis_client is not None


class CacheManager:
    """
    Namespaced JSON cache.

    Lookups degrade to a miss when Redis is not initialized or errors, so
    the caller always falls back to computing a fresh response.

    Example:
        cache = CacheManager("analytics", default_ttl=5)
        await cache.set("summary", summary.model_dump(mode="json"))
        cached = await cache.get("summary")
    """

    def __init__(self, namespace: str, default_ttl: int = 60):
        self.namespace = namespace
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        if not is_redis_ready():
            return None
        try:
            value = await get_redis().get(self._key(key))
        except Exception as e:
            logger.warning("Cache read failed", key=self._key(key), error=str(e))
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[Union[int, timedelta]] = None,
    ) -> bool:
        if not is_redis_ready():
            return False
        ttl = ttl or self.default_ttl
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        try:
            await get_redis().setex(self._key(key), ttl, json.dumps(value, default=str))
        except Exception as e:
            logger.warning("Cache write failed", key=self._key(key), error=str(e))
            return False
        return True


analytics_cache = CacheManager("analytics", default_ttl=get_settings().analytics.summary_cache_ttl)
