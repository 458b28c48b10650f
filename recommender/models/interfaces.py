"""
Collaborator interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts that store and provider implementations must follow.
"""
from typing import List, Optional, Protocol, Set, runtime_checkable

from recommender.models.schemas import HistoryEntry, VideoSearchResult


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Interface for the shared key-value store.
    Production: Redis implementation.
    Testing: In-memory implementation.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        ...

    async def set_nx(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        Set key only if it does not exist.

        Returns:
            True if this call created the key
        """
        ...

    async def delete(self, key: str) -> bool:
        ...

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        ...

    async def ttl(self, key: str) -> int:
        """
        Remaining time to live.

        Returns:
            Seconds remaining, -1 if the key has no expiry, -2 if absent
        """
        ...

    async def sadd(self, key: str, *members: str) -> int:
        ...

    async def smembers(self, key: str) -> Set[str]:
        ...

    async def incr(self, key: str) -> int:
        ...


@runtime_checkable
class SearchProvider(Protocol):
    """
    Interface for video search.
    Production: YouTube Data API v3.
    """

    async def search(
        self,
        query: str,
        min_duration_minutes: float,
        max_duration_minutes: float,
        min_popularity: int,
        months_back: int,
    ) -> List[VideoSearchResult]:
        """
        Search for candidate videos.

        Args:
            query: Free-text search query
            min_duration_minutes: Shortest acceptable video
            max_duration_minutes: Longest acceptable video
            min_popularity: Minimum view count
            months_back: Freshness window in calendar months

        Returns:
            Candidates with metadata (may be empty)

        Raises:
            SearchProviderError: On upstream failure
        """
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Interface for free-form LLM text generation (query synthesis)."""

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        ...


@runtime_checkable
class AnnotationProvider(Protocol):
    """
    Interface for per-video justification text.
    Production: Gemini implementation.
    """

    async def annotate(self, video: VideoSearchResult, topic: str) -> str:
        """
        Explain why a video suits the topic.

        Raises:
            AnnotationProviderError: On provider failure
        """
        ...


@runtime_checkable
class RecommendationHistoryRepository(Protocol):
    """Interface for the delivered-batch history log."""

    async def add(self, entry: HistoryEntry) -> str:
        """Persist an entry and return its identifier."""
        ...

    async def list_for_user(
        self,
        user_id: str,
        content_preference: Optional[str] = None,
        language_preference: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[HistoryEntry]:
        """A user's entries, newest first, optionally filtered by preference."""
        ...

    async def count_for_user(
        self,
        user_id: str,
        content_preference: Optional[str] = None,
        language_preference: Optional[str] = None,
    ) -> int:
        ...

    async def delete(self, user_id: str, entry_id: str) -> bool:
        """Delete one of the user's entries; False if it does not exist."""
        ...

    async def clear_for_user(self, user_id: str) -> int:
        """Delete all of a user's entries and return how many there were."""
        ...
