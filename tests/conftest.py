"""
Pytest configuration and fixtures.
"""
from typing import Any, List, Optional, Sequence, Tuple, Union

import pytest
from fastapi.testclient import TestClient

from recommender.api.dependencies import (
    get_history_log,
    get_key_value_store,
    get_recommendation_service,
)
from recommender.config.settings import Settings, get_settings
from recommender.core.cache import InMemoryKeyValueStore
from recommender.main import app
from recommender.models.schemas import CachedVideo, VideoSearchResult
from recommender.repositories.history import UserHistoryRepository
from recommender.repositories.lock import RecommendationLock
from recommender.repositories.memory import InMemoryHistoryRepository
from recommender.repositories.pool import VideoPoolRepository
from recommender.services.query import QuerySynthesizer
from recommender.services.recommendations import RecommendationService


# =============================================================================
# Builders
# =============================================================================


def make_result(
    index: int,
    views: Optional[int] = None,
    duration: float = 60.0,
    title: Optional[str] = None,
) -> VideoSearchResult:
    """Search hit with views decreasing by index unless given."""
    return VideoSearchResult(
        id=f"vid{index}",
        title=title or f"Episode {index}",
        creator=f"Creator {index}",
        thumbnail_url=f"https://i.ytimg.com/vi/vid{index}/hqdefault.jpg",
        url=f"https://www.youtube.com/watch?v=vid{index}",
        duration_minutes=duration,
        view_count=views if views is not None else 1_000_000 - index * 1_000,
        description="A long conversation.",
    )


def make_video(index: int) -> CachedVideo:
    return CachedVideo(
        video_id=f"vid{index}",
        title=f"Episode {index}",
        creator=f"Creator {index}",
        thumbnail_url=f"https://i.ytimg.com/vi/vid{index}/hqdefault.jpg",
        video_url=f"https://www.youtube.com/watch?v=vid{index}",
        view_count=1_000_000 - index * 1_000,
        duration="60 minutes",
        reasoning="Worth a listen.",
    )


# =============================================================================
# Fakes
# =============================================================================


SearchResponse = Union[List[VideoSearchResult], Exception]


class FakeSearchProvider:
    """
    Returns queued responses in order, then `default` for every later call.
    Exceptions in the queue are raised.
    """

    def __init__(
        self,
        responses: Optional[Sequence[SearchResponse]] = None,
        default: Optional[List[VideoSearchResult]] = None,
    ) -> None:
        self._responses = list(responses or [])
        self._default = default or []
        self.calls: List[Tuple[str, float, float, int, int]] = []

    async def search(self, query, min_duration_minutes, max_duration_minutes, min_popularity, months_back):
        self.calls.append((query, min_duration_minutes, max_duration_minutes, min_popularity, months_back))
        response = self._responses.pop(0) if self._responses else self._default
        if isinstance(response, Exception):
            raise response
        return list(response)


class FakeLLM:
    """Text generator and annotator with canned output."""

    def __init__(self, query: str = "podcast 2025 tech -hindi -india", annotate_error: Optional[Exception] = None):
        self.query = query
        self.annotate_error = annotate_error
        self.prompts: List[str] = []

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        return self.query

    async def annotate(self, video: VideoSearchResult, topic: str) -> str:
        if self.annotate_error is not None:
            raise self.annotate_error
        return f"A great {topic} pick: {video.title}."


class RecordingStore:
    """Wraps a store and records every command issued to it."""

    def __init__(self, inner: InMemoryKeyValueStore) -> None:
        self._inner = inner
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def __getattr__(self, name: str):
        command = getattr(self._inner, name)

        async def recorded(*args, **kwargs):
            self.calls.append((name, args))
            return await command(*args, **kwargs)

        return recorded


def build_service(
    store,
    search: FakeSearchProvider,
    llm: FakeLLM,
    settings: Settings,
) -> RecommendationService:
    return RecommendationService(
        pool_repo=VideoPoolRepository(store, ttl_seconds=settings.POOL_TTL_SEC),
        history_repo=UserHistoryRepository(
            store,
            timezone=settings.TIMEZONE,
            seen_ttl_seconds=settings.SEEN_TTL_SEC,
            daily_refresh_limit=settings.DAILY_REFRESH_LIMIT,
        ),
        lock=RecommendationLock(store, ttl_seconds=settings.LOCK_TTL_SEC),
        query_synthesizer=QuerySynthesizer(llm),
        search_provider=search,
        annotation_provider=llm,
        settings=settings,
    )


async def collect(events) -> list:
    return [event async for event in events]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_settings():
    """Settings with stream pacing disabled."""
    return Settings(STREAM_PACING_SEC=0)


@pytest.fixture
def store():
    """Fresh in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def search_results():
    """Twelve eligible search hits, most viewed first."""
    return [make_result(i) for i in range(12)]


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def history_log():
    return InMemoryHistoryRepository()


@pytest.fixture
def test_client(store, search_results, fake_llm, test_settings, history_log):
    """
    TestClient fixture with dependency overrides.
    Uses the in-memory store and fake providers for isolation.
    """
    settings = get_settings()
    original_key = settings.YOUTUBE_API_KEY
    settings.YOUTUBE_API_KEY = "test-key"

    service = build_service(store, FakeSearchProvider(default=search_results), fake_llm, test_settings)
    app.dependency_overrides[get_key_value_store] = lambda: store
    app.dependency_overrides[get_recommendation_service] = lambda: service
    app.dependency_overrides[get_history_log] = lambda: history_log

    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
        settings.YOUTUBE_API_KEY = original_key
