"""Repository implementations package."""
from .history import UserHistoryRepository, seconds_until_midnight
from .lock import RecommendationLock
from .memory import InMemoryHistoryRepository
from .pool import VideoPoolRepository
from .redis_store import RedisKeyValueStore

__all__ = [
    "InMemoryHistoryRepository",
    "RecommendationLock",
    "RedisKeyValueStore",
    "UserHistoryRepository",
    "VideoPoolRepository",
    "seconds_until_midnight",
]
