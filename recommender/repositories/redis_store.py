"""
Redis implementation of the KeyValueStore contract.
Thin adapter over redis.asyncio; errors surface as CacheError.
"""
import logging
from typing import Optional, Set

from redis.asyncio import Redis
from redis.exceptions import RedisError

from recommender.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """
    Key-value store backed by Redis.

    Configuration:
        The client must be created with `decode_responses=True` so reads
        return `str`, matching the in-memory store.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        """Create a store from a redis:// URL."""
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise CacheError("get", str(e)) from e

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            await self._redis.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise CacheError("set", str(e)) from e

    async def set_nx(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        try:
            created = await self._redis.set(key, value, ex=ttl_seconds, nx=True)
        except RedisError as e:
            raise CacheError("set_nx", str(e)) from e
        return bool(created)

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._redis.delete(key))
        except RedisError as e:
            raise CacheError("delete", str(e)) from e

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        try:
            return bool(await self._redis.expire(key, ttl_seconds))
        except RedisError as e:
            raise CacheError("expire", str(e)) from e

    async def ttl(self, key: str) -> int:
        try:
            return int(await self._redis.ttl(key))
        except RedisError as e:
            raise CacheError("ttl", str(e)) from e

    async def sadd(self, key: str, *members: str) -> int:
        try:
            return int(await self._redis.sadd(key, *members))
        except RedisError as e:
            raise CacheError("sadd", str(e)) from e

    async def smembers(self, key: str) -> Set[str]:
        try:
            return set(await self._redis.smembers(key))
        except RedisError as e:
            raise CacheError("smembers", str(e)) from e

    async def incr(self, key: str) -> int:
        try:
            return int(await self._redis.incr(key))
        except RedisError as e:
            raise CacheError("incr", str(e)) from e

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._redis.aclose()
