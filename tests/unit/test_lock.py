import pytest

from recommender.core.cache import InMemoryKeyValueStore
from recommender.repositories.lock import RecommendationLock


class TestRecommendationLock:
    @pytest.mark.asyncio
    async def test_second_acquire_fails_until_release(self, store):
        lock = RecommendationLock(store)
        assert await lock.acquire("u1") is True
        assert await lock.acquire("u1") is False

        await lock.release("u1")
        assert await lock.acquire("u1") is True

    @pytest.mark.asyncio
    async def test_lock_is_per_user(self, store):
        lock = RecommendationLock(store)
        assert await lock.acquire("u1") is True
        assert await lock.acquire("u2") is True

    @pytest.mark.asyncio
    async def test_lock_key_and_ttl(self, store):
        lock = RecommendationLock(store)
        await lock.acquire("u1")
        assert await store.ttl("lock:recommendations:u1") == 10

    @pytest.mark.asyncio
    async def test_abandoned_lock_expires(self):
        now = [0.0]
        store = InMemoryKeyValueStore(clock=lambda: now[0])
        lock = RecommendationLock(store, ttl_seconds=10)
        await lock.acquire("u1")

        now[0] = 10.0
        assert await lock.acquire("u1") is True

    @pytest.mark.asyncio
    async def test_release_without_lock_is_harmless(self, store):
        lock = RecommendationLock(store)
        await lock.release("u1")
        assert await lock.acquire("u1") is True
