"""
Recommendation service - main pipeline orchestrator.
Coordinates the per-user lock, user history, the shared video pool, query
synthesis, search and annotation into a stream of progress and video events.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional, Set, Tuple

from recommender.config.settings import Settings, get_settings
from recommender.core.exceptions import SearchProviderError
from recommender.core.telemetry import (
    POOL_WRITES,
    RECOMMENDATION_REQUESTS,
    SEARCH_ATTEMPTS,
    VIDEOS_SERVED,
)
from recommender.models.interfaces import AnnotationProvider, SearchProvider
from recommender.models.schemas import (
    CachedVideo,
    ErrorEvent,
    ProgressEvent,
    ProgressType,
    RecommendationEvent,
    RelaxationParams,
    VideoEvent,
    VideoPool,
    VideoSearchResult,
)
from recommender.repositories.history import UserHistoryRepository
from recommender.repositories.lock import RecommendationLock
from recommender.repositories.pool import VideoPoolRepository
from recommender.services.filters import (
    OriginFilterPolicy,
    format_duration,
    passes_filters,
    relaxation_params_for_attempt,
)
from recommender.services.query import QuerySynthesizer, modifier_for_attempt

logger = logging.getLogger(__name__)

REPLAY_MESSAGE = "Daily limit reached. Returning your previous selection"


@dataclass
class _SearchOutcome:
    """Videos accumulated by a multi-query search, plus the last query used."""

    videos: List[CachedVideo] = field(default_factory=list)
    query: str = ""


def fallback_reasoning(video: VideoSearchResult, topic: str) -> str:
    return (
        f"This trending podcast from {video.creator} offers "
        f"{int(video.duration_minutes)} minutes of {topic} content, with "
        f"{video.view_count:,} views demonstrating its popularity and relevance."
    )


def dedupe_videos(videos: Iterable[CachedVideo]) -> Tuple[List[CachedVideo], int]:
    """Drop repeated video IDs, keeping the first. Returns (videos, dropped_count)."""
    seen_ids: Set[str] = set()
    unique = []
    dropped = 0
    for video in videos:
        if video.video_id in seen_ids:
            dropped += 1
            continue
        seen_ids.add(video.video_id)
        unique.append(video)
    return unique, dropped


class RecommendationService:
    """
    Recommendation pipeline for one user request.

    Responsibilities:
    - Reject concurrent requests from the same user
    - Enforce the daily refresh quota, replaying the last batch once exhausted
    - Refill the shared pool with progressively relaxed searches
    - Serve unseen videos and record what was served
    """

    def __init__(
            self,
            pool_repo: VideoPoolRepository,
            history_repo: UserHistoryRepository,
            lock: RecommendationLock,
            query_synthesizer: QuerySynthesizer,
            search_provider: SearchProvider,
            annotation_provider: AnnotationProvider,
            settings: Optional[Settings] = None,
            origin_policy: Optional[OriginFilterPolicy] = None,
    ) -> None:
        """
        Initialize recommendation service with dependencies.

        Args:
            pool_repo: Shared (topic, language) video pools
            history_repo: Per-user seen set, today cache and quota
            lock: Per-user request lock
            query_synthesizer: Builds search queries
            search_provider: Video search backend
            annotation_provider: Generates per-video reasoning
            settings: Policy constants (defaults to application settings)
            origin_policy: Content-origin deny list (defaults from settings)
        """
        self._pools = pool_repo
        self._history = history_repo
        self._lock = lock
        self._queries = query_synthesizer
        self._search = search_provider
        self._annotator = annotation_provider
        self._settings = settings or get_settings()
        self._origin_policy = origin_policy or OriginFilterPolicy.from_settings(self._settings)

    async def get_youtube_recommendations(
            self,
            user_id: str,
            topic: str,
            language: str,
    ) -> AsyncIterator[RecommendationEvent]:
        """
        Run the pipeline, yielding progress and video events.

        The sequence is finite and not restartable. On an unexpected error an
        ErrorEvent is yielded, the lock is released and the exception re-raised.
        """
        # Step 1: Acquire per-user lock
        if not await self._lock.acquire(user_id, self._settings.LOCK_TTL_SEC):
            RECOMMENDATION_REQUESTS.labels(outcome="locked").inc()
            yield ProgressEvent(
                message="⏳ Your previous request is still running. Please try again in a few seconds.",
                progress_type=ProgressType.LOCKED,
            )
            return

        try:
            async for event in self._run_pipeline(user_id, topic, language):
                yield event
        except Exception as e:
            RECOMMENDATION_REQUESTS.labels(outcome="error").inc()
            logger.exception(f"Recommendation pipeline failed: {e}", extra={"user_id": user_id})
            yield ErrorEvent(message=f"❌ Error: {e}")
            raise
        finally:
            await self._lock.release(user_id)

    async def _run_pipeline(
            self,
            user_id: str,
            topic: str,
            language: str,
    ) -> AsyncIterator[RecommendationEvent]:
        settings = self._settings
        limit = settings.DAILY_REFRESH_LIMIT
        pool_key = self._pools.pool_key(topic, language)

        # Step 2: Load seen set (self-heals its TTL)
        seen = await self._history.get_seen(user_id)

        # Step 3: Replay today's batch once the quota is used up
        yield ProgressEvent(
            message="📊 Checking refresh limit for today...",
            progress_type=ProgressType.REFRESH_CHECK,
        )
        today_cache = await self._history.get_today_cache(user_id)
        if today_cache is not None and today_cache.refresh_count >= limit:
            if not today_cache.videos:
                RECOMMENDATION_REQUESTS.labels(outcome="quota_exhausted").inc()
                yield ProgressEvent(
                    message="❌ Daily limit reached and no previous selection was found. Try again tomorrow!",
                    progress_type=ProgressType.LIMIT_REACHED,
                )
                return

            replay = today_cache.videos[-settings.VIDEOS_PER_REQUEST:]
            RECOMMENDATION_REQUESTS.labels(outcome="replayed").inc()
            yield ProgressEvent(
                message=f"🔁 {REPLAY_MESSAGE} ({limit}/{limit} refreshes used today).",
                progress_type=ProgressType.REPLAY,
            )
            for video in replay:
                yield VideoEvent(data=video)
            return

        # Step 4: Quota check (guards against today-cache/quota desync)
        allowed, count = await self._history.can_refresh(user_id)
        if not allowed:
            RECOMMENDATION_REQUESTS.labels(outcome="quota_exhausted").inc()
            yield ProgressEvent(
                message=f"❌ Daily refresh limit reached ({count}/{limit}). Try again tomorrow!",
                progress_type=ProgressType.LIMIT_REACHED,
            )
            return
        yield ProgressEvent(message=f"✅ Refresh {count + 1}/{limit} for today")

        # Step 5: Unseen candidates from the shared pool
        yield ProgressEvent(message=f"🔍 Checking cache for {topic}/{language} content...")
        pool = await self._pools.get(topic, language)
        unseen = self._unseen(pool, seen)

        # Step 6: Refill when the pool is missing or running low
        if pool is None or len(unseen) < settings.POOL_REFRESH_THRESHOLD:
            yield ProgressEvent(
                message=f"💫 Only {len(unseen)} unseen videos cached. Fetching fresh content...",
            )
            exclude_ids = seen | set(pool.video_ids() if pool else ())
            refill = _SearchOutcome()
            async for event in self._refill_search(topic, language, exclude_ids, refill):
                yield event

            if pool is None and not refill.videos:
                RECOMMENDATION_REQUESTS.labels(outcome="empty").inc()
                yield ProgressEvent(
                    message="❌ No suitable videos found for these preferences. Try different preferences.",
                    progress_type=ProgressType.EMPTY,
                )
                return

            if refill.videos:
                yield ProgressEvent(
                    message=f"💾 Caching {len(refill.videos)} videos for future use...",
                    progress_type=ProgressType.CACHING,
                )
                pool = await self._persist(topic, language, pool, refill.videos, refill.query)
            unseen = self._unseen(pool, seen)
        else:
            yield ProgressEvent(
                message=f"🎯 Cache hit! {len(unseen)} unseen videos in pool",
                progress_type=ProgressType.CACHE_HIT,
            )

        # Step 7: Selection
        yield ProgressEvent(
            message="🔄 Processing personalization...",
            progress_type=ProgressType.PROCESSING,
        )
        if len(unseen) >= settings.VIDEOS_PER_REQUEST:
            selection = unseen[:settings.VIDEOS_PER_REQUEST]
        elif len(unseen) >= settings.MIN_ACCEPTABLE_VIDEOS:
            selection = list(unseen)
            yield ProgressEvent(message=f"⚠️ Only {len(unseen)} unseen videos available. Serving them all.")
        else:
            yield ProgressEvent(
                message=f"🚨 Only {len(unseen)} unseen videos left. Running emergency search...",
            )
            emergency = _SearchOutcome()
            exclude_ids = seen | {video.video_id for video in unseen}
            async for event in self._emergency_search(topic, language, exclude_ids, emergency):
                yield event
            if emergency.videos:
                pool = await self._persist(topic, language, pool, emergency.videos, emergency.query)
            selection = emergency.videos

        # Step 8: Final dedupe
        selection, dropped = dedupe_videos(selection)
        if dropped:
            yield ProgressEvent(message=f"🧹 Removed {dropped} duplicate videos")

        # Step 9: Nothing left to serve
        if not selection:
            RECOMMENDATION_REQUESTS.labels(outcome="empty").inc()
            logger.error(
                f"No unique videos left for {topic}/{language}; content space exhausted",
                extra={"user_id": user_id, "pool_key": pool_key},
            )
            yield ProgressEvent(
                message=(
                    "❌ No unique videos available right now.\n"
                    f"You've already seen everything we found for {topic} in {language}.\n"
                    "Try different preferences or check back later."
                ),
                progress_type=ProgressType.EMPTY,
            )
            return

        # Step 10: Stream videos
        yield ProgressEvent(message=f"🎬 Streaming {len(selection)} personalized recommendations...")
        for index, video in enumerate(selection):
            if index and settings.STREAM_PACING_SEC > 0:
                await asyncio.sleep(settings.STREAM_PACING_SEC)
            yield VideoEvent(data=video)

        # Step 11: Commit seen set, today cache, quota (in this order)
        served_ids = [video.video_id for video in selection]
        await self._history.mark_seen(user_id, served_ids)
        prior_videos = today_cache.videos if today_cache is not None else []
        prior_count = today_cache.refresh_count if today_cache is not None else count
        await self._history.set_today_cache(user_id, prior_videos + selection, prior_count + 1)
        await self._history.increment_refresh(user_id)

        RECOMMENDATION_REQUESTS.labels(outcome="served").inc()
        VIDEOS_SERVED.inc(len(selection))
        logger.info(
            f"Served {len(selection)} videos for {topic}/{language}",
            extra={"user_id": user_id, "pool_key": pool_key},
        )

        # Step 12: Completion
        total_seen = len(seen | set(served_ids))
        yield ProgressEvent(
            message=f"✅ Recommendations delivered! You've discovered {total_seen} unique videos so far.",
            progress_type=ProgressType.COMPLETE,
        )

    # -------------------------------------------------------------------------
    # Search Phases
    # -------------------------------------------------------------------------

    async def _refill_search(
            self,
            topic: str,
            language: str,
            exclude_ids: Set[str],
            outcome: _SearchOutcome,
    ) -> AsyncIterator[RecommendationEvent]:
        """Up to MAX_SEARCH_ATTEMPTS relaxed searches, collecting TARGET_NEW_VIDEOS."""
        settings = self._settings
        target = settings.TARGET_NEW_VIDEOS
        known_ids = set(exclude_ids)

        for attempt in range(settings.MAX_SEARCH_ATTEMPTS):
            if len(outcome.videos) >= target:
                break

            params = relaxation_params_for_attempt(attempt, settings.MAX_DURATION_MINUTES)
            yield ProgressEvent(
                message=f"🧠 Generating search query (attempt {attempt + 1}/{settings.MAX_SEARCH_ATTEMPTS})...",
                progress_type=ProgressType.QUERY_GENERATION,
            )
            query = await self._queries.synthesize(topic, language, modifier_for_attempt(attempt))
            outcome.query = query

            yield ProgressEvent(
                message=(
                    f'🔍 Searching YouTube for "{query}" '
                    f"({params.min_duration_minutes}+ min, {params.min_popularity:,}+ views, "
                    f"last {params.months_back} months)..."
                ),
                progress_type=ProgressType.YOUTUBE_SEARCH,
            )
            candidates = await self._search_safely(query, params, phase="refill")
            if candidates is None:
                yield ProgressEvent(message=f"⚠️ Search attempt {attempt + 1} failed, relaxing criteria...")
                continue

            eligible = self._eligible(candidates, params, known_ids)
            yield ProgressEvent(message=f"✅ {len(eligible)} new videos passed filters")

            batch = eligible[:target - len(outcome.videos)]
            if batch:
                yield ProgressEvent(
                    message=f"🤖 Analyzing {len(batch)} videos for quality insights...",
                    progress_type=ProgressType.ANALYSIS,
                )
            for result in batch:
                outcome.videos.append(await self._annotate(result, topic))
                known_ids.add(result.id)

    async def _emergency_search(
            self,
            topic: str,
            language: str,
            exclude_ids: Set[str],
            outcome: _SearchOutcome,
    ) -> AsyncIterator[RecommendationEvent]:
        """Fixed fallback queries at maximum relaxation until MIN_ACCEPTABLE_VIDEOS are found."""
        settings = self._settings
        floor = settings.MIN_ACCEPTABLE_VIDEOS
        params = relaxation_params_for_attempt(
            settings.EMERGENCY_RELAXATION_LEVEL, settings.MAX_DURATION_MINUTES
        )
        known_ids = set(exclude_ids)

        for query in self._emergency_queries(topic, language):
            if len(outcome.videos) >= floor:
                break

            outcome.query = query
            yield ProgressEvent(
                message=f'🆘 Emergency search: "{query}"',
                progress_type=ProgressType.YOUTUBE_SEARCH,
            )
            candidates = await self._search_safely(query, params, phase="emergency")
            if candidates is None:
                continue

            for result in self._eligible(candidates, params, known_ids)[:floor - len(outcome.videos)]:
                outcome.videos.append(await self._annotate(result, topic))
                known_ids.add(result.id)

    @staticmethod
    def _emergency_queries(topic: str, language: str) -> List[str]:
        year = datetime.now().year
        return [
            f"{topic} podcast",
            f"{topic} podcast {language}",
            f"{topic} interview podcast",
            f"podcast {year} trending {topic}",
        ]

    async def _search_safely(
            self,
            query: str,
            params: RelaxationParams,
            phase: str,
    ) -> Optional[List[VideoSearchResult]]:
        """Run a search; None when the provider failed (the caller moves on)."""
        try:
            results = await self._search.search(
                query,
                params.min_duration_minutes,
                params.max_duration_minutes,
                params.min_popularity,
                params.months_back,
            )
        except SearchProviderError as e:
            SEARCH_ATTEMPTS.labels(phase=phase, result="failed").inc()
            logger.warning(f"Search failed ({phase}): {e.message}", extra={"query": query})
            return None

        SEARCH_ATTEMPTS.labels(phase=phase, result="ok").inc()
        return results

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _eligible(
            self,
            candidates: List[VideoSearchResult],
            params: RelaxationParams,
            known_ids: Set[str],
    ) -> List[VideoSearchResult]:
        """Filter, drop known IDs, sort by views and keep the top candidates."""
        eligible = []
        batch_ids: Set[str] = set()
        for result in candidates:
            if result.id in known_ids or result.id in batch_ids:
                continue
            if not passes_filters(result, params, self._origin_policy):
                continue
            batch_ids.add(result.id)
            eligible.append(result)

        eligible.sort(key=lambda r: r.view_count, reverse=True)
        return eligible[:self._settings.TOP_CANDIDATES_PER_ATTEMPT]

    async def _annotate(self, result: VideoSearchResult, topic: str) -> CachedVideo:
        """Build a CachedVideo; annotation failures degrade to templated reasoning."""
        try:
            reasoning = await self._annotator.annotate(result, topic)
        except Exception as e:
            logger.warning(f"Annotation failed for {result.id}, using fallback: {e}")
            reasoning = ""

        return CachedVideo(
            video_id=result.id,
            title=result.title,
            creator=result.creator,
            thumbnail_url=result.thumbnail_url,
            video_url=result.url,
            view_count=result.view_count,
            duration=format_duration(result.duration_minutes),
            reasoning=reasoning or fallback_reasoning(result, topic),
        )

    async def _persist(
            self,
            topic: str,
            language: str,
            pool: Optional[VideoPool],
            videos: List[CachedVideo],
            query: str,
    ) -> VideoPool:
        """Append to the pool, creating it if it is missing (or expired meanwhile)."""
        if pool is not None:
            updated = await self._pools.append(topic, language, videos)
            if updated is not None:
                POOL_WRITES.labels(operation="append").inc()
                return updated

        POOL_WRITES.labels(operation="create").inc()
        return await self._pools.create(topic, language, videos, query)

    @staticmethod
    def _unseen(pool: Optional[VideoPool], seen: Set[str]) -> List[CachedVideo]:
        if pool is None:
            return []
        return [video for video in pool.videos if video.video_id not in seen]
