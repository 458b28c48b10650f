"""
Per-user history repository.
Tracks seen videos (sliding window), today's delivered batch and the
daily refresh quota.
"""
import logging
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from typing import Callable, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from recommender.models.interfaces import KeyValueStore
from recommender.models.schemas import CachedVideo, UserDayCache

logger = logging.getLogger(__name__)

SEEN_TTL_SECONDS = 5 * 24 * 60 * 60
DAILY_REFRESH_LIMIT = 2


def seconds_until_midnight(now: datetime) -> int:
    """Seconds from `now` until the next midnight in now's timezone."""
    next_day = (now + timedelta(days=1)).date()
    midnight = datetime(next_day.year, next_day.month, next_day.day, tzinfo=now.tzinfo)
    # Compare in UTC so DST transitions are counted
    remaining = midnight.astimezone(dt_timezone.utc) - now.astimezone(dt_timezone.utc)
    return max(1, int(remaining.total_seconds()))


class UserHistoryRepository:
    """
    Owns per-user recommendation state.

    Day-scoped keys use the calendar date in the configured timezone and
    expire at that timezone's next midnight.
    """

    def __init__(
        self,
        store: KeyValueStore,
        timezone: str = "Asia/Jakarta",
        seen_ttl_seconds: int = SEEN_TTL_SECONDS,
        daily_refresh_limit: int = DAILY_REFRESH_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._tz = ZoneInfo(timezone)
        self._seen_ttl_seconds = seen_ttl_seconds
        self._daily_refresh_limit = daily_refresh_limit
        self._clock = clock or (lambda: datetime.now(self._tz))

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock().astimezone(self._tz)

    def _today(self) -> str:
        return self._now().date().isoformat()

    @staticmethod
    def seen_key(user_id: str) -> str:
        return f"user:{user_id}:seen"

    def refresh_key(self, user_id: str) -> str:
        return f"user:{user_id}:refresh:{self._today()}"

    def today_key(self, user_id: str) -> str:
        return f"user:{user_id}:today:{self._today()}"

    # -------------------------------------------------------------------------
    # Seen videos
    # -------------------------------------------------------------------------

    async def validate_seen_videos(self, user_id: str) -> None:
        """
        Reset the seen-set TTL if it was lost or has decayed below half
        the window.
        """
        key = self.seen_key(user_id)
        ttl = await self._store.ttl(key)
        if ttl == -2:
            return
        if ttl == -1 or ttl < self._seen_ttl_seconds // 2:
            logger.info(
                f"Resetting seen-set TTL (was {ttl}s)",
                extra={"user_id": user_id},
            )
            await self._store.expire(key, self._seen_ttl_seconds)

    async def get_seen(self, user_id: str) -> Set[str]:
        """Videos the user was shown within the sliding window."""
        await self.validate_seen_videos(user_id)
        return await self._store.smembers(self.seen_key(user_id))

    async def mark_seen(self, user_id: str, video_ids: List[str]) -> None:
        if not video_ids:
            return
        key = self.seen_key(user_id)
        await self._store.sadd(key, *video_ids)
        await self._store.expire(key, self._seen_ttl_seconds)

    # -------------------------------------------------------------------------
    # Today cache
    # -------------------------------------------------------------------------

    async def get_today_cache(self, user_id: str) -> Optional[UserDayCache]:
        raw = await self._store.get(self.today_key(user_id))
        if not raw:
            return None
        try:
            return UserDayCache.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(
                f"Failed to parse today cache, treating as miss: {e}",
                extra={"user_id": user_id},
            )
            return None

    async def set_today_cache(
        self,
        user_id: str,
        videos: List[CachedVideo],
        refresh_count: int,
    ) -> UserDayCache:
        now = self._now()
        cache = UserDayCache(
            videos=videos,
            refresh_count=refresh_count,
            date=now.date().isoformat(),
        )
        await self._store.set(
            self.today_key(user_id),
            cache.model_dump_json(by_alias=True),
            ttl_seconds=seconds_until_midnight(now),
        )
        return cache

    # -------------------------------------------------------------------------
    # Refresh quota
    # -------------------------------------------------------------------------

    async def can_refresh(self, user_id: str) -> Tuple[bool, int]:
        """
        Returns:
            Tuple of (allowed, current_count)
        """
        raw = await self._store.get(self.refresh_key(user_id))
        count = int(raw) if raw else 0
        return count < self._daily_refresh_limit, count

    async def increment_refresh(self, user_id: str) -> int:
        key = self.refresh_key(user_id)
        count = await self._store.incr(key)
        # Racing first increments may both set the TTL; same value either way
        if count == 1:
            await self._store.expire(key, seconds_until_midnight(self._now()))
        return count
