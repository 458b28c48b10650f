import pytest

from conftest import make_video
from recommender.models.schemas import HistoryEntry
from recommender.repositories.memory import InMemoryHistoryRepository


def entry(user_id: str = "u1", topic: str = "Tech", language: str = "English") -> HistoryEntry:
    return HistoryEntry(
        user_id=user_id,
        content_preference=topic,
        language_preference=language,
        videos=[make_video(0)],
        source="test",
        timestamp="2025-06-01T08:00:00+00:00",
    )


class TestInMemoryHistoryRepository:
    @pytest.mark.asyncio
    async def test_add_assigns_id(self, history_log: InMemoryHistoryRepository):
        entry_id = await history_log.add(entry())

        [stored] = await history_log.list_for_user("u1")
        assert stored.id == entry_id

    @pytest.mark.asyncio
    async def test_newest_first_with_offset_and_limit(self, history_log: InMemoryHistoryRepository):
        ids = [await history_log.add(entry()) for _ in range(4)]

        page = await history_log.list_for_user("u1", limit=2, offset=1)

        assert [e.id for e in page] == [ids[2], ids[1]]
        assert await history_log.count_for_user("u1") == 4

    @pytest.mark.asyncio
    async def test_filters_and_counts(self, history_log: InMemoryHistoryRepository):
        await history_log.add(entry(topic="Tech"))
        await history_log.add(entry(topic="Comedy", language="Indonesian"))
        await history_log.add(entry(user_id="u2", topic="Comedy"))

        comedy = await history_log.list_for_user("u1", content_preference="Comedy")
        assert [e.language_preference for e in comedy] == ["Indonesian"]
        assert await history_log.count_for_user("u1", language_preference="English") == 1
        assert await history_log.count_for_user("u2") == 1

    @pytest.mark.asyncio
    async def test_delete_is_scoped_to_owner(self, history_log: InMemoryHistoryRepository):
        entry_id = await history_log.add(entry())

        assert await history_log.delete("u2", entry_id) is False
        assert await history_log.delete("u1", "missing") is False
        assert await history_log.delete("u1", entry_id) is True
        assert await history_log.list_for_user("u1") == []

    @pytest.mark.asyncio
    async def test_clear_for_user(self, history_log: InMemoryHistoryRepository):
        await history_log.add(entry())
        await history_log.add(entry())
        await history_log.add(entry(user_id="u2"))

        assert await history_log.clear_for_user("u1") == 2
        assert await history_log.count_for_user("u1") == 0
        assert await history_log.count_for_user("u2") == 1
