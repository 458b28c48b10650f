"""
Unit tests for the in-memory key-value store.
"""
import pytest

from recommender.core.cache import InMemoryKeyValueStore


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestInMemoryKeyValueStore:
    @pytest.mark.asyncio
    async def test_get_set(self):
        store = InMemoryKeyValueStore()
        await store.set("key", "value")
        assert await store.get("key") == "value"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_expiration(self):
        clock = FakeClock()
        store = InMemoryKeyValueStore(clock=clock)
        await store.set("key", "value", ttl_seconds=10)

        clock.now += 9
        assert await store.get("key") == "value"

        clock.now += 1
        assert await store.get("key") is None

    @pytest.mark.asyncio
    async def test_ttl_follows_redis_conventions(self):
        clock = FakeClock()
        store = InMemoryKeyValueStore(clock=clock)
        await store.set("persistent", "v")
        await store.set("expiring", "v", ttl_seconds=100)

        assert await store.ttl("missing") == -2
        assert await store.ttl("persistent") == -1
        clock.now += 30.5
        assert await store.ttl("expiring") == 70

    @pytest.mark.asyncio
    async def test_set_nx_only_creates_once(self):
        store = InMemoryKeyValueStore()
        assert await store.set_nx("lock", "1", ttl_seconds=10) is True
        assert await store.set_nx("lock", "1", ttl_seconds=10) is False

        await store.delete("lock")
        assert await store.set_nx("lock", "1", ttl_seconds=10) is True

    @pytest.mark.asyncio
    async def test_set_nx_succeeds_after_expiry(self):
        clock = FakeClock()
        store = InMemoryKeyValueStore(clock=clock)
        await store.set_nx("lock", "1", ttl_seconds=10)

        clock.now += 10
        assert await store.set_nx("lock", "1", ttl_seconds=10) is True

    @pytest.mark.asyncio
    async def test_set_commands(self):
        store = InMemoryKeyValueStore()
        assert await store.sadd("seen", "a", "b") == 2
        assert await store.sadd("seen", "b", "c") == 1
        assert await store.smembers("seen") == {"a", "b", "c"}
        assert await store.smembers("missing") == set()
        # A new set has no expiry until one is applied
        assert await store.ttl("seen") == -1

    @pytest.mark.asyncio
    async def test_expire_and_delete(self):
        store = InMemoryKeyValueStore()
        assert await store.expire("missing", 10) is False

        await store.set("key", "value")
        assert await store.expire("key", 10) is True
        assert 0 < await store.ttl("key") <= 10

        assert await store.delete("key") is True
        assert await store.delete("key") is False

    @pytest.mark.asyncio
    async def test_incr(self):
        store = InMemoryKeyValueStore()
        assert await store.incr("counter") == 1
        assert await store.incr("counter") == 2
        assert await store.get("counter") == "2"

    @pytest.mark.asyncio
    async def test_wrong_type_raises(self):
        store = InMemoryKeyValueStore()
        await store.sadd("seen", "a")
        with pytest.raises(TypeError):
            await store.get("seen")

    def test_clear(self):
        store = InMemoryKeyValueStore()
        store._store["key"] = None
        assert store.size() == 1
        store.clear()
        assert store.size() == 0
