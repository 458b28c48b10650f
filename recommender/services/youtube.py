"""
YouTube Data API v3 search provider.
Searches long videos ordered by view count, then fetches duration and
statistics for the hits and merges them into VideoSearchResult objects.
"""
import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
import isodate

from recommender.config.settings import Settings, get_settings
from recommender.core.exceptions import (
    ProviderConfigurationError,
    SearchProviderError,
    SearchQuotaExceededError,
)
from recommender.models.schemas import VideoSearchResult

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
DESCRIPTION_MAX_CHARS = 200


def parse_duration_minutes(duration: Optional[str]) -> float:
    """Convert an ISO 8601 duration ("PT1H30M45S") to minutes; 0 if unparseable."""
    if not duration:
        return 0.0
    try:
        parsed = isodate.parse_duration(duration)
    except (isodate.ISO8601Error, ValueError):
        logger.debug(f"Unparseable duration: {duration}")
        return 0.0
    if not isinstance(parsed, timedelta):
        # Year/month durations never occur for videos
        return 0.0
    return parsed.total_seconds() / 60


def months_ago(now: datetime, months: int) -> datetime:
    """Same wall-clock time `months` calendar months earlier, clamping the day."""
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


class YouTubeSearchProvider:
    """
    Async client for the YouTube Data API.

    Usage:
        provider = YouTubeSearchProvider()
        results = await provider.search("podcast 2025 ai", 30, 150, 100000, 1)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._settings.YOUTUBE_API_BASE_URL,
                timeout=self._settings.YOUTUBE_TIMEOUT_SEC,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search(
        self,
        query: str,
        min_duration_minutes: float,
        max_duration_minutes: float,
        min_popularity: int,
        months_back: int,
    ) -> List[VideoSearchResult]:
        """
        Search YouTube and return candidates meeting the criteria.

        Raises:
            ProviderConfigurationError: If no API key is configured
            SearchProviderError: On API or transport errors
        """
        if not self._settings.YOUTUBE_API_KEY:
            raise ProviderConfigurationError("YouTube Data API", "YOUTUBE_API_KEY")

        published_after = months_ago(datetime.now(timezone.utc), months_back)
        items = await self._request(
            "/search",
            {
                "part": "snippet",
                "type": "video",
                "videoDuration": "long",
                "order": "viewCount",
                "maxResults": self._settings.YOUTUBE_MAX_RESULTS,
                "publishedAfter": published_after.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "q": query,
            },
        )
        if not items:
            return []

        video_ids = [item["id"]["videoId"] for item in items if item.get("id", {}).get("videoId")]
        details = await self._request(
            "/videos",
            {"part": "contentDetails,statistics", "id": ",".join(video_ids)},
        )
        details_by_id = {d["id"]: d for d in details}

        results = []
        for item in items:
            result = self._merge(item, details_by_id)
            if result is None:
                continue
            if not min_duration_minutes <= result.duration_minutes <= max_duration_minutes:
                continue
            if result.view_count < min_popularity:
                continue
            results.append(result)

        logger.debug(
            f"YouTube search returned {len(items)} items, {len(results)} matched criteria",
            extra={"query": query},
        )
        return results

    async def _request(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        client = await self._get_client()
        params = {**params, "key": self._settings.YOUTUBE_API_KEY}

        try:
            response = await client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"YouTube API request failed: path={path}, status={status}")
            if status in (403, 429):
                raise SearchQuotaExceededError(status) from e
            raise SearchProviderError(f"API request failed: {status}", status=status) from e
        except httpx.RequestError as e:
            logger.error(f"YouTube API transport error: path={path}, error={e}")
            raise SearchProviderError(f"Request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"YouTube API returned a non-JSON body: path={path}")
            raise SearchProviderError("Malformed response body") from e
        if not isinstance(payload, dict):
            raise SearchProviderError("Malformed response body")

        return payload.get("items", [])

    @staticmethod
    def _merge(
        item: Dict[str, Any],
        details_by_id: Dict[str, Dict[str, Any]],
    ) -> Optional[VideoSearchResult]:
        """Combine a search hit with its details; None if the hit is malformed."""
        video_id = item.get("id", {}).get("videoId")
        snippet = item.get("snippet")
        if not video_id or not snippet:
            return None

        details = details_by_id.get(video_id, {})
        thumbnails = snippet.get("thumbnails", {})
        thumbnail = thumbnails.get("high") or thumbnails.get("default") or {}

        return VideoSearchResult(
            id=video_id,
            title=snippet.get("title", ""),
            creator=snippet.get("channelTitle", ""),
            thumbnail_url=thumbnail.get("url", ""),
            url=WATCH_URL.format(video_id=video_id),
            duration_minutes=parse_duration_minutes(
                details.get("contentDetails", {}).get("duration")
            ),
            view_count=int(details.get("statistics", {}).get("viewCount", 0)),
            published_at=snippet.get("publishedAt"),
            description=(snippet.get("description") or "")[:DESCRIPTION_MAX_CHARS],
        )
