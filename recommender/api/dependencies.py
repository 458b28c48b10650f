"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
import logging
from functools import lru_cache
from typing import Union

from recommender.config import get_settings
from recommender.core.cache import InMemoryKeyValueStore
from recommender.repositories.history import UserHistoryRepository
from recommender.repositories.lock import RecommendationLock
from recommender.repositories.memory import InMemoryHistoryRepository
from recommender.repositories.pool import VideoPoolRepository
from recommender.repositories.redis_store import RedisKeyValueStore
from recommender.services.gemini import GeminiAnnotationProvider
from recommender.services.query import QuerySynthesizer
from recommender.services.recommendations import RecommendationService
from recommender.services.youtube import YouTubeSearchProvider

logger = logging.getLogger(__name__)

StoreBackend = Union[RedisKeyValueStore, InMemoryKeyValueStore]


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_key_value_store() -> StoreBackend:
    """
    Get singleton key-value store.
    Redis when REDIS_URL is set, otherwise a process-local store.
    """
    settings = get_settings()
    if settings.REDIS_URL:
        return RedisKeyValueStore.from_url(settings.REDIS_URL)

    logger.warning("REDIS_URL not set, using in-memory store (state is per-process)")
    return InMemoryKeyValueStore()


@lru_cache()
def get_pool_repository() -> VideoPoolRepository:
    """Get singleton shared pool repository."""
    return VideoPoolRepository(get_key_value_store(), ttl_seconds=get_settings().POOL_TTL_SEC)


@lru_cache()
def get_user_history_repository() -> UserHistoryRepository:
    """Get singleton per-user history repository."""
    settings = get_settings()
    return UserHistoryRepository(
        get_key_value_store(),
        timezone=settings.TIMEZONE,
        seen_ttl_seconds=settings.SEEN_TTL_SEC,
        daily_refresh_limit=settings.DAILY_REFRESH_LIMIT,
    )


@lru_cache()
def get_recommendation_lock() -> RecommendationLock:
    """Get singleton per-user request lock."""
    return RecommendationLock(get_key_value_store(), ttl_seconds=get_settings().LOCK_TTL_SEC)


@lru_cache()
def get_search_provider() -> YouTubeSearchProvider:
    """Get singleton YouTube search provider."""
    return YouTubeSearchProvider(get_settings())


@lru_cache()
def get_annotation_provider() -> GeminiAnnotationProvider:
    """Get singleton Gemini provider (query and annotation channels)."""
    return GeminiAnnotationProvider(get_settings())


@lru_cache()
def get_query_synthesizer() -> QuerySynthesizer:
    """Get singleton query synthesizer."""
    return QuerySynthesizer(get_annotation_provider())


@lru_cache()
def get_history_log() -> InMemoryHistoryRepository:
    """Get singleton recommendation history log."""
    return InMemoryHistoryRepository()


# =============================================================================
# Request-Scoped Dependencies (Per-Request Lifetime)
# =============================================================================


def get_recommendation_service() -> RecommendationService:
    """
    Get recommendation service with all dependencies wired.
    This is the main entry point for the recommendations endpoint.
    """
    return RecommendationService(
        pool_repo=get_pool_repository(),
        history_repo=get_user_history_repository(),
        lock=get_recommendation_lock(),
        query_synthesizer=get_query_synthesizer(),
        search_provider=get_search_provider(),
        annotation_provider=get_annotation_provider(),
        settings=get_settings(),
    )


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    get_key_value_store.cache_clear()
    get_pool_repository.cache_clear()
    get_user_history_repository.cache_clear()
    get_recommendation_lock.cache_clear()
    get_search_provider.cache_clear()
    get_annotation_provider.cache_clear()
    get_query_synthesizer.cache_clear()
    get_history_log.cache_clear()
