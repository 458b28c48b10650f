"""
Recommendations API router.
Implements POST /v1/recommendations as a server-sent event stream.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse

from recommender.api.dependencies import get_history_log, get_recommendation_service
from recommender.config import get_settings
from recommender.core.exceptions import ConfigurationError, UnauthorizedError, ValidationError
from recommender.models.interfaces import RecommendationHistoryRepository
from recommender.models.schemas import (
    CachedVideo,
    ErrorEvent,
    HistoryEntry,
    ProgressEvent,
    ProgressType,
    RecommendationRequest,
    VideoEvent,
)
from recommender.services.recommendations import RecommendationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["recommendations"])

SOURCE = "YouTube Data API v3 + Gemini Analysis"
DONE_MARKER = "data: [DONE]\n\n"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# Strong references so running pipelines are not garbage collected
_background_tasks: Set[asyncio.Task] = set()


def format_sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _video_payload(video: CachedVideo) -> Dict[str, Any]:
    return video.model_dump(by_alias=True)


async def _run_pipeline(
    service: RecommendationService,
    history_log: RecommendationHistoryRepository,
    user_id: str,
    body: RecommendationRequest,
    queue: "asyncio.Queue[Optional[str]]",
) -> None:
    """
    Drive the pipeline to completion, pushing SSE chunks into `queue`.

    Runs independently of the HTTP response so the pipeline commits even
    if the client disconnects mid-stream. A None sentinel ends the stream.
    """
    settings = get_settings()
    collected: List[CachedVideo] = []
    is_replay = False
    error_sent = False

    try:
        async for event in service.get_youtube_recommendations(
            user_id,
            body.content_preference,
            body.language_preference,
        ):
            if isinstance(event, ProgressEvent):
                if event.progress_type == ProgressType.REPLAY:
                    is_replay = True
                await queue.put(format_sse({
                    "type": "progress",
                    "progressType": event.progress_type.value,
                    "message": event.message.strip(),
                }))
            elif isinstance(event, VideoEvent):
                collected.append(event.data)
                await queue.put(format_sse({
                    "type": "video",
                    "data": _video_payload(event.data),
                    "index": len(collected) - 1,
                    "totalCount": settings.VIDEOS_PER_REQUEST,
                }))
            elif isinstance(event, ErrorEvent):
                error_sent = True
                await queue.put(format_sse({
                    "type": "error",
                    "error": "Stream failed",
                    "message": event.message,
                }))
    except Exception as e:
        logger.error(f"Recommendation stream failed: {e}", extra={"user_id": user_id})
        if not error_sent:
            await queue.put(format_sse({
                "type": "error",
                "error": "Stream failed",
                "message": str(e),
            }))
        await queue.put(None)
        return

    # Replays were recorded when first delivered
    if collected and not is_replay:
        await _record_history(history_log, user_id, body, collected)

    await queue.put(format_sse({
        "type": "complete",
        "data": {"videos": [_video_payload(video) for video in collected]},
        "userId": user_id,
        "source": SOURCE,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "contentPreference": body.content_preference,
        "languagePreference": body.language_preference,
        "isExhaustedRefresh": is_replay,
    }))
    await queue.put(DONE_MARKER)
    await queue.put(None)


async def _record_history(
    history_log: RecommendationHistoryRepository,
    user_id: str,
    body: RecommendationRequest,
    videos: List[CachedVideo],
) -> None:
    """Save a delivered batch; failures are logged and never reach the client."""
    entry = HistoryEntry(
        user_id=user_id,
        content_preference=body.content_preference,
        language_preference=body.language_preference,
        videos=videos,
        source=SOURCE,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    try:
        history_id = await history_log.add(entry)
    except Exception as e:
        logger.error(f"Failed to save recommendation history: {e}", extra={"user_id": user_id})
        return
    logger.info(f"Recommendation history saved: {history_id}", extra={"user_id": user_id})


async def _drain(queue: "asyncio.Queue[Optional[str]]") -> AsyncIterator[str]:
    while True:
        chunk = await queue.get()
        if chunk is None:
            return
        yield chunk


@router.post(
    "/recommendations",
    summary="Stream Podcast Recommendations",
    description="""
    Stream up to five personalized podcast recommendations.

    Events are sent as `data: {json}` lines:
    - `progress` messages while the pipeline runs
    - one `video` event per recommendation
    - a final `complete` event with the full batch, then `[DONE]`

    Each user gets two fresh batches per day; further requests replay the
    latest batch.
    """,
    responses={
        200: {"description": "Event stream", "content": {"text/event-stream": {}}},
        400: {"description": "Blank preference"},
        401: {"description": "Missing X-User-Id header"},
        500: {"description": "Search provider not configured"},
    },
)
async def stream_recommendations(
    body: RecommendationRequest,
    x_user_id: Optional[str] = Header(
        default=None,
        alias="X-User-Id",
        description="Authenticated user identifier",
    ),
    service: RecommendationService = Depends(get_recommendation_service),
    history_log: RecommendationHistoryRepository = Depends(get_history_log),
) -> StreamingResponse:
    """Recommendations endpoint."""
    if not x_user_id:
        raise UnauthorizedError()

    if not body.content_preference.strip() or not body.language_preference.strip():
        raise ValidationError(
            "Preferences must not be blank",
            details={"fields": ["contentPreference", "languagePreference"]},
        )

    if not get_settings().YOUTUBE_API_KEY:
        raise ConfigurationError("YOUTUBE_API_KEY")

    queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
    task = asyncio.create_task(_run_pipeline(service, history_log, x_user_id, body, queue))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    return StreamingResponse(
        _drain(queue),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
