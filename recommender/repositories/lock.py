"""
Per-user recommendation lock.
Short-lived advisory lock that rejects a duplicate concurrent request
(double click, double submit) from the same user.
"""
import logging
from typing import Optional

from recommender.models.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

LOCK_TTL_SECONDS = 10


class RecommendationLock:
    """SET NX EX lock keyed by user ID."""

    def __init__(self, store: KeyValueStore, ttl_seconds: int = LOCK_TTL_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def lock_key(user_id: str) -> str:
        return f"lock:recommendations:{user_id}"

    async def acquire(self, user_id: str, ttl_seconds: Optional[int] = None) -> bool:
        """Returns True iff this call created the lock."""
        acquired = await self._store.set_nx(
            self.lock_key(user_id),
            "1",
            ttl_seconds=ttl_seconds or self._ttl_seconds,
        )
        if not acquired:
            logger.info("Recommendation lock busy", extra={"user_id": user_id})
        return acquired

    async def release(self, user_id: str) -> None:
        await self._store.delete(self.lock_key(user_id))
