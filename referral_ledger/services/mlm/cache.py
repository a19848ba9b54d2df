"""
MLM read cache.

Summaries and overall statistics are cached for a short TTL. The cache is
best-effort: read or write failures fall back to computing the value, and
invalidation failures are only logged.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from loguru import logger

from redis.asyncio import Redis as AsyncRedis


MLM_STRUCTURE_PREFIX = "mlm:structure"
MLM_COMMISSIONS_PREFIX = "mlm:commissions"
OVERALL_STATS_KEY = f"{MLM_COMMISSIONS_PREFIX}:overall"


def structure_key(user_id: int) -> str:
    """Cache key of a master's ledger summary."""
    return f"{MLM_STRUCTURE_PREFIX}:{user_id}"


class MlmCache(Protocol):
    """Cache interface used by the MLM service."""

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: int,
    ) -> Any:
        ...

    async def invalidate(self, user_id: int) -> None:
        ...


class NullMlmCache:
    """No caching: always computes the value."""

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: int,
    ) -> Any:
        return await factory()

    async def invalidate(self, user_id: int) -> None:
        return None


class RedisMlmCache:
    """JSON values in Redis with TTL."""

    def __init__(self, redis: AsyncRedis) -> None:
        """
        Initialize cache.

        Args:
            redis: Redis client instance (decode_responses=True)
        """
        self.redis = redis

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl: int,
    ) -> Any:
        try:
            cached = await self.redis.get(key)
            if cached is not None:
                return json.loads(cached)
        except Exception as e:
            logger.warning(f"MLM cache read failed for {key}: {e}")

        value = await factory()

        if ttl > 0:
            try:
                await self.redis.set(key, json.dumps(value, default=str), ex=ttl)
            except Exception as e:
                logger.warning(f"MLM cache write failed for {key}: {e}")

        return value

    async def invalidate(self, user_id: int) -> None:
        """
        Invalidate cached MLM data of a user and the overall statistics.

        Args:
            user_id: User whose ledger changed
        """
        try:
            deleted = await self.redis.delete(
                structure_key(user_id), OVERALL_STATS_KEY
            )
            if deleted:
                logger.info(f"MLM cache invalidated for user {user_id}")
        except Exception as e:
            logger.error(f"Failed to invalidate MLM cache for user {user_id}: {e}")
