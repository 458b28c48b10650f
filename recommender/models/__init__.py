"""Models package - domain entities and interfaces."""
from .interfaces import (
    AnnotationProvider,
    KeyValueStore,
    RecommendationHistoryRepository,
    SearchProvider,
    TextGenerator,
)
from .schemas import (
    CachedVideo,
    ErrorEvent,
    HistoryDeleteResponse,
    HistoryEntry,
    HistoryResponse,
    Pagination,
    ProgressEvent,
    ProgressType,
    RecommendationEvent,
    RecommendationRequest,
    RelaxationParams,
    UserDayCache,
    VideoEvent,
    VideoPool,
    VideoSearchResult,
)

__all__ = [
    # Interfaces
    "AnnotationProvider",
    "KeyValueStore",
    "RecommendationHistoryRepository",
    "SearchProvider",
    "TextGenerator",
    # Schemas
    "CachedVideo",
    "ErrorEvent",
    "HistoryDeleteResponse",
    "HistoryEntry",
    "HistoryResponse",
    "Pagination",
    "ProgressEvent",
    "ProgressType",
    "RecommendationEvent",
    "RecommendationRequest",
    "RelaxationParams",
    "UserDayCache",
    "VideoEvent",
    "VideoPool",
    "VideoSearchResult",
]
