"""
Redis-backed key-value store for the credential cache.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.config import RedisSettings
from shared.errors import CacheError
from shared.logging import get_logger


class RedisStore:
    """Credential cache store living in Redis.

    Expiry is delegated to Redis (``SET ... EX``). Keys are namespaced with
    ``key_prefix`` so ``clear`` only touches this adaptor's entries.
    """

    def __init__(self, settings: RedisSettings, client: Optional[redis.Redis] = None):
        self.settings = settings
        self.key_prefix = settings.key_prefix
        self.logger = get_logger("registry_auth.cache.redis")
        self.redis = client if client is not None else self._connect(settings)

    @staticmethod
    def _connect(settings: RedisSettings) -> redis.Redis:
        # Connections are opened lazily on the first command
        options = dict(
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.socket_timeout,
            socket_timeout=settings.socket_timeout,
            health_check_interval=30,
        )
        if settings.url:
            return redis.from_url(settings.url, **options)
        return redis.Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            username=settings.username,
            password=settings.password,
            **options
        )

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Redis get failed: {e}", details={"key": key})

    async def set(self, key: str, value: str, ttl: float) -> None:
        try:
            await self.redis.set(self._key(key), value, ex=max(1, int(ttl)))
        except RedisError as e:
            raise CacheError(f"Redis set failed: {e}", details={"key": key})

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            raise CacheError(f"Redis delete failed: {e}", details={"key": key})

    async def clear(self) -> None:
        try:
            keys = [key async for key in self.redis.scan_iter(match=f"{self.key_prefix}*")]
            if keys:
                await self.redis.delete(*keys)
        except RedisError as e:
            raise CacheError(f"Redis clear failed: {e}")
        self.logger.info("Credential cache cleared", count=len(keys))

    async def close(self) -> None:
        await self.redis.aclose()
        self.logger.info("Redis connection closed")

    def maybe_sweep(self) -> int:
        # Redis expires keys itself
        return 0

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except RedisError as e:
            self.logger.warning("Redis health check failed", error=str(e))
            return False
