"""
Redis client lifecycle and counters for rate limiting.
"""

import logging

import redis.asyncio as aioredis

from tenantgate.config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Redis-based counter store.

    Handles:
    - Connection lifecycle
    - Key namespacing
    - TTL management
    """

    def __init__(self) -> None:
        self._client: aioredis.Redis | None = None

    async def init(self) -> None:
        """Initialize Redis connection pool."""
        logger.info("Initializing Redis connection...")

        self._client = aioredis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )

        await self._client.ping()
        logger.info("Redis connection initialized")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")

    @property
    def is_ready(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client."""
        if not self._client:
            raise RuntimeError("Cache not initialized. Call init() first.")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        """
        Build namespaced key.

        Format: tenantgate:{namespace}:{key}
        Example: tenantgate:rl_redeem:203.0.113.7:redeem
        """
        return f"tenantgate:{namespace}:{key}"

    async def increment(
        self,
        namespace: str,
        key: str,
        ttl: int | None = None,
    ) -> int:
        """
        Increment a counter, creating it if missing.

        The TTL is only set when the key is created so a fixed window
        does not slide forward on every hit.

        Returns:
            New counter value
        """
        cache_key = self._build_key(namespace, key)

        try:
            pipe = self.client.pipeline()
            await pipe.incr(cache_key)
            if ttl:
                await pipe.expire(cache_key, ttl, nx=True)
            results = await pipe.execute()
            return results[0]

        except Exception as e:
            logger.error(f"Cache increment error: {cache_key} - {e}")
            raise

    async def get_ttl(self, namespace: str, key: str) -> int:
        """Get remaining TTL for a key in seconds."""
        cache_key = self._build_key(namespace, key)

        try:
            return await self.client.ttl(cache_key)
        except Exception as e:
            logger.warning(f"Cache TTL error: {cache_key} - {e}")
            return -1

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.warning(f"Cache ping error: {e}")
            return False


# Global instance
cache_manager = CacheManager()
