"""
Shared video pool repository.
One pool per (topic, language) pair, stored as JSON with a fixed TTL.
"""
import logging
import time
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from recommender.models.interfaces import KeyValueStore
from recommender.models.schemas import CachedVideo, VideoPool

logger = logging.getLogger(__name__)

POOL_TTL_SECONDS = 5 * 24 * 60 * 60


def _unique_by_id(videos: Iterable[CachedVideo], taken: Optional[set] = None) -> List[CachedVideo]:
    """Keep the first occurrence of each video ID, skipping IDs in `taken`."""
    seen = set(taken or ())
    unique = []
    for video in videos:
        if video.video_id in seen:
            continue
        seen.add(video.video_id)
        unique.append(video)
    return unique


class VideoPoolRepository:
    """
    Owns the per-(topic, language) video pool.

    Writes are read-modify-write without versioning: two concurrent appends
    to the same pool can both read the same base and the later write wins.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = POOL_TTL_SECONDS) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def pool_key(topic: str, language: str) -> str:
        """
        Build the pool key.

        Format is `pool:{first 3 chars of topic}{EN|ID}`, e.g. "pool:TecEN".
        Manual cache inspection depends on this format.
        """
        lang_code = "EN" if language == "English" else "ID"
        return f"pool:{topic[:3]}{lang_code}"

    async def get(self, topic: str, language: str) -> Optional[VideoPool]:
        """Fetch the pool, treating unparseable data as a miss."""
        key = self.pool_key(topic, language)
        raw = await self._store.get(key)
        if not raw:
            return None

        try:
            return VideoPool.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(
                f"Failed to parse cached pool {key}, treating as miss: {e}",
                extra={"pool_key": key},
            )
            return None

    async def create(
        self,
        topic: str,
        language: str,
        videos: List[CachedVideo],
        query: str,
    ) -> VideoPool:
        """Write a fresh pool, overwriting any existing value."""
        pool = VideoPool(
            videos=_unique_by_id(videos),
            timestamp=int(time.time() * 1000),
            query=query,
        )
        await self._write(self.pool_key(topic, language), pool)
        return pool

    async def append(
        self,
        topic: str,
        language: str,
        new_videos: List[CachedVideo],
    ) -> Optional[VideoPool]:
        """
        Add videos not already in the pool and reset the TTL.

        Returns:
            The updated pool, or None if no pool exists (caller must create first)
        """
        pool = await self.get(topic, language)
        if pool is None:
            return None

        additions = _unique_by_id(new_videos, taken=set(pool.video_ids()))
        updated = VideoPool(
            videos=pool.videos + additions,
            timestamp=pool.timestamp,
            query=pool.query,
        )
        await self._write(self.pool_key(topic, language), updated)
        logger.debug(
            f"Appended {len(additions)} videos to pool (size={len(updated.videos)})",
            extra={"pool_key": self.pool_key(topic, language)},
        )
        return updated

    async def _write(self, key: str, pool: VideoPool) -> None:
        await self._store.set(
            key,
            pool.model_dump_json(by_alias=True),
            ttl_seconds=self._ttl_seconds,
        )
