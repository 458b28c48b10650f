"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Podcast Recommender"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Key-value store (in-memory store is used when unset)
    REDIS_URL: Optional[str] = None

    # YouTube Data API v3
    YOUTUBE_API_KEY: Optional[str] = None
    YOUTUBE_API_BASE_URL: str = "https://www.googleapis.com/youtube/v3"
    YOUTUBE_TIMEOUT_SEC: float = 10.0
    YOUTUBE_MAX_RESULTS: int = 40

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_QUERY_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_ANALYSIS_MODEL: str = "gemini-2.5-flash"

    # Cache TTLs (seconds)
    POOL_TTL_SEC: int = 5 * 24 * 60 * 60  # 5 days
    SEEN_TTL_SEC: int = 5 * 24 * 60 * 60  # 5 days
    LOCK_TTL_SEC: int = 10

    # Day boundary for quota and today-cache
    TIMEZONE: str = "Asia/Jakarta"

    # Recommendation policy
    DAILY_REFRESH_LIMIT: int = 2
    VIDEOS_PER_REQUEST: int = 5
    MIN_ACCEPTABLE_VIDEOS: int = 3
    POOL_REFRESH_THRESHOLD: int = 10
    MAX_SEARCH_ATTEMPTS: int = 3
    TARGET_NEW_VIDEOS: int = 10
    TOP_CANDIDATES_PER_ATTEMPT: int = 15
    MAX_DURATION_MINUTES: int = 150
    EMERGENCY_RELAXATION_LEVEL: int = 3

    # Delay between streamed videos (cosmetic)
    STREAM_PACING_SEC: float = 0.1

    # Content-origin filter (product policy)
    EXCLUDED_ORIGIN_KEYWORDS: List[str] = [
        "hindi",
        "india",
        "indian",
        "bollywood",
        "desi",
        "hinglish",
        "mumbai",
        "delhi",
        "punjabi",
        "tamil",
        "telugu",
    ]
    EXCLUDED_SCRIPT_RANGES: List[Tuple[int, int]] = [
        (0x0900, 0x097F),  # Devanagari
        (0x0980, 0x09FF),  # Bengali
        (0x0A00, 0x0A7F),  # Gurmukhi
        (0x0A80, 0x0AFF),  # Gujarati
        (0x0B00, 0x0B7F),  # Oriya
        (0x0B80, 0x0BFF),  # Tamil
        (0x0C00, 0x0C7F),  # Telugu
        (0x0C80, 0x0CFF),  # Kannada
        (0x0D00, 0x0D7F),  # Malayalam
    ]
    EXCLUDED_SCRIPT_MIN_CHARS: int = 3

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
