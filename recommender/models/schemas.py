"""
Domain models using Pydantic.
All data structures for the recommendation pipeline.

Stored JSON keeps the camelCase field names of existing cache entries
(`videoId`, `refreshCount`, ...); Python code uses snake_case attributes.
"""
from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Domain Models (Stored)
# =============================================================================


class CachedVideo(BaseModel):
    """A recommendation ready to serve. Immutable once created."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    video_id: str = Field(..., alias="videoId", description="YouTube video ID")
    title: str = Field(..., description="Video title")
    creator: str = Field(..., description="Channel title")
    thumbnail_url: str = Field(..., alias="thumbnailUrl")
    video_url: str = Field(..., alias="videoUrl")
    view_count: int = Field(..., ge=0, alias="viewCount")
    duration: str = Field(..., description="Display duration, e.g. '42 minutes'")
    reasoning: str = Field(..., description="LLM-generated justification")


class VideoPool(BaseModel):
    """
    Shared reservoir of videos for one (topic, language) pair.
    Insertion order is discovery order; video IDs are unique.
    """

    model_config = ConfigDict(populate_by_name=True)

    videos: List[CachedVideo] = Field(default_factory=list)
    timestamp: int = Field(..., description="Epoch milliseconds of last full write")
    query: str = Field(default="", description="Last search query (diagnostic)")

    def video_ids(self) -> List[str]:
        return [video.video_id for video in self.videos]


class UserDayCache(BaseModel):
    """What a user was served on the current local calendar day."""

    model_config = ConfigDict(populate_by_name=True)

    videos: List[CachedVideo] = Field(default_factory=list)
    refresh_count: int = Field(default=0, ge=0, alias="refreshCount")
    date: str = Field(..., description="ISO date in the service timezone")


# =============================================================================
# Provider Models
# =============================================================================


class VideoSearchResult(BaseModel):
    """Candidate returned by the search provider."""

    id: str
    title: str
    creator: str
    thumbnail_url: str = ""
    url: str
    duration_minutes: float = Field(default=0.0, ge=0)
    view_count: int = Field(default=0, ge=0)
    published_at: Optional[str] = None
    description: str = ""


class RelaxationParams(BaseModel):
    """Search/filter thresholds for one relaxation attempt."""

    model_config = ConfigDict(frozen=True)

    min_duration_minutes: int
    max_duration_minutes: int
    min_popularity: int
    months_back: int


# =============================================================================
# Pipeline Events
# =============================================================================


class ProgressType(str, Enum):
    """Kind of progress message, used by the streaming layer."""

    GENERAL = "general"
    LOCKED = "locked"
    REFRESH_CHECK = "refreshCheck"
    LIMIT_REACHED = "limitReached"
    REPLAY = "replay"
    CACHE_HIT = "cacheHit"
    QUERY_GENERATION = "queryGeneration"
    YOUTUBE_SEARCH = "youtubeSearch"
    ANALYSIS = "geminiAnalysis"
    CACHING = "caching"
    PROCESSING = "processing"
    EMPTY = "empty"
    COMPLETE = "complete"


class ProgressEvent(BaseModel):
    """Human-readable progress message."""

    type: Literal["progress"] = "progress"
    message: str
    progress_type: ProgressType = ProgressType.GENERAL


class VideoEvent(BaseModel):
    """One recommended video."""

    type: Literal["video"] = "video"
    data: CachedVideo


class ErrorEvent(BaseModel):
    """Terminal error signal, emitted before the exception propagates."""

    type: Literal["error"] = "error"
    message: str


RecommendationEvent = Union[ProgressEvent, VideoEvent, ErrorEvent]


# =============================================================================
# API Models (External)
# =============================================================================


class RecommendationRequest(BaseModel):
    """Request body for the recommendations endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    content_preference: str = Field(
        ...,
        min_length=1,
        alias="contentPreference",
        description="Topic, e.g. 'Tech'",
    )
    language_preference: str = Field(
        ...,
        min_length=1,
        alias="languagePreference",
        description="'English' or 'Indonesian'",
    )


class HistoryEntry(BaseModel):
    """A delivered batch, recorded for the user's history view."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, description="Assigned when stored")
    user_id: str = Field(..., alias="userId")
    content_preference: str = Field(..., alias="contentPreference")
    language_preference: str = Field(..., alias="languagePreference")
    videos: List[CachedVideo]
    source: str
    timestamp: str = Field(..., description="ISO-8601 UTC delivery time")


class Pagination(BaseModel):
    """Page metadata for list endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_count: int = Field(..., ge=0, alias="totalCount")
    total_pages: int = Field(..., ge=0, alias="totalPages")


class HistoryResponse(BaseModel):
    """History endpoint response."""

    success: bool = True
    data: List[HistoryEntry] = Field(..., description="Batches, newest first")
    pagination: Pagination


class HistoryDeleteResponse(BaseModel):
    """History delete response."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    deleted_count: int = Field(..., ge=0, alias="deletedCount")
