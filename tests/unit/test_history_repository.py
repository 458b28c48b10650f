"""
Unit tests for per-user history: seen set, today cache and refresh quota.
"""
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from conftest import make_video
from recommender.core.cache import InMemoryKeyValueStore
from recommender.repositories.history import UserHistoryRepository, seconds_until_midnight

JAKARTA = ZoneInfo("Asia/Jakarta")
SEEN_TTL = 432000


def fixed_clock(*args):
    moment = datetime(*args, tzinfo=JAKARTA)
    return lambda: moment


class TestSecondsUntilMidnight:
    def test_one_hour_before_midnight(self):
        assert seconds_until_midnight(datetime(2025, 1, 1, 23, 0, tzinfo=JAKARTA)) == 3600

    def test_at_midnight_is_a_full_day(self):
        assert seconds_until_midnight(datetime(2025, 1, 1, 0, 0, tzinfo=JAKARTA)) == 86400

    def test_counts_dst_transition(self):
        new_york = ZoneInfo("America/New_York")
        # Clocks spring forward on 2025-03-09, so that day lasts 23 hours
        assert seconds_until_midnight(datetime(2025, 3, 9, 0, 0, tzinfo=new_york)) == 23 * 3600

    def test_never_zero(self):
        now = datetime(2025, 1, 1, 23, 59, 59, 999999, tzinfo=JAKARTA)
        assert seconds_until_midnight(now) == 1


class TestSeenVideos:
    @pytest.mark.asyncio
    async def test_mark_and_get_seen(self, store):
        repo = UserHistoryRepository(store)
        await repo.mark_seen("u1", ["a", "b"])
        await repo.mark_seen("u1", ["b", "c"])

        assert await repo.get_seen("u1") == {"a", "b", "c"}
        assert await store.ttl("user:u1:seen") == SEEN_TTL

    @pytest.mark.asyncio
    async def test_mark_seen_empty_is_noop(self, store):
        repo = UserHistoryRepository(store)
        await repo.mark_seen("u1", [])
        assert await store.ttl("user:u1:seen") == -2

    @pytest.mark.asyncio
    async def test_missing_ttl_is_restored(self, store):
        await store.sadd("user:u1:seen", "a")
        assert await store.ttl("user:u1:seen") == -1

        repo = UserHistoryRepository(store)
        assert await repo.get_seen("u1") == {"a"}
        assert await store.ttl("user:u1:seen") == SEEN_TTL

    @pytest.mark.asyncio
    async def test_decayed_ttl_is_restored(self):
        now = [0.0]
        store = InMemoryKeyValueStore(clock=lambda: now[0])
        repo = UserHistoryRepository(store)
        await repo.mark_seen("u1", ["a"])

        # Just under half the window remains
        now[0] = SEEN_TTL // 2 + 10
        await repo.validate_seen_videos("u1")
        assert await store.ttl("user:u1:seen") == SEEN_TTL

    @pytest.mark.asyncio
    async def test_healthy_ttl_is_left_alone(self):
        now = [0.0]
        store = InMemoryKeyValueStore(clock=lambda: now[0])
        repo = UserHistoryRepository(store)
        await repo.mark_seen("u1", ["a"])

        now[0] = 1000
        await repo.validate_seen_videos("u1")
        assert await store.ttl("user:u1:seen") == SEEN_TTL - 1000

    @pytest.mark.asyncio
    async def test_validate_missing_key_does_nothing(self, store):
        repo = UserHistoryRepository(store)
        await repo.validate_seen_videos("nobody")
        assert store.size() == 0


class TestTodayCache:
    @pytest.mark.asyncio
    async def test_round_trip_expires_at_local_midnight(self, store):
        repo = UserHistoryRepository(store, clock=fixed_clock(2025, 6, 1, 23, 0))
        await repo.set_today_cache("u1", [make_video(1)], refresh_count=1)

        cache = await repo.get_today_cache("u1")
        assert cache.refresh_count == 1
        assert cache.date == "2025-06-01"
        assert [v.video_id for v in cache.videos] == ["vid1"]
        assert await store.ttl("user:u1:today:2025-06-01") == 3600

    @pytest.mark.asyncio
    async def test_day_uses_configured_timezone(self, store):
        # 18:00 UTC is already the next day in Jakarta (UTC+7)
        utc_evening = datetime(2025, 6, 1, 18, 0, tzinfo=ZoneInfo("UTC"))
        repo = UserHistoryRepository(store, clock=lambda: utc_evening)
        assert repo.today_key("u1") == "user:u1:today:2025-06-02"
        assert repo.refresh_key("u1") == "user:u1:refresh:2025-06-02"

    @pytest.mark.asyncio
    async def test_unparseable_cache_is_a_miss(self, store):
        repo = UserHistoryRepository(store, clock=fixed_clock(2025, 6, 1, 12, 0))
        await store.set("user:u1:today:2025-06-01", "[]")
        assert await repo.get_today_cache("u1") is None

    @pytest.mark.asyncio
    async def test_missing_cache(self, store):
        repo = UserHistoryRepository(store)
        assert await repo.get_today_cache("u1") is None


class TestRefreshQuota:
    @pytest.mark.asyncio
    async def test_quota_allows_two_refreshes(self, store):
        repo = UserHistoryRepository(store, clock=fixed_clock(2025, 6, 1, 12, 0))
        assert await repo.can_refresh("u1") == (True, 0)

        assert await repo.increment_refresh("u1") == 1
        assert await repo.can_refresh("u1") == (True, 1)

        assert await repo.increment_refresh("u1") == 2
        assert await repo.can_refresh("u1") == (False, 2)

    @pytest.mark.asyncio
    async def test_counter_expires_at_local_midnight(self, store):
        repo = UserHistoryRepository(store, clock=fixed_clock(2025, 6, 1, 22, 0))
        await repo.increment_refresh("u1")
        assert await store.ttl("user:u1:refresh:2025-06-01") == 7200

    @pytest.mark.asyncio
    async def test_new_day_resets_quota(self, store):
        moment = [datetime(2025, 6, 1, 12, 0, tzinfo=JAKARTA)]
        repo = UserHistoryRepository(store, clock=lambda: moment[0])
        await repo.increment_refresh("u1")
        await repo.increment_refresh("u1")
        assert (await repo.can_refresh("u1"))[0] is False

        moment[0] = datetime(2025, 6, 2, 0, 5, tzinfo=JAKARTA)
        assert await repo.can_refresh("u1") == (True, 0)
