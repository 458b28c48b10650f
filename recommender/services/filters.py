"""
Candidate filtering helpers.
Pure functions: relaxation schedule, content-origin heuristic and the
combined filter applied to search results.
"""
import re
from typing import List, Optional, Pattern, Sequence, Tuple

from pydantic import BaseModel, Field

from recommender.config.settings import Settings, get_settings
from recommender.models.schemas import RelaxationParams, VideoSearchResult

BASE_MIN_DURATION_MINUTES = 30
FLOOR_MIN_DURATION_MINUTES = 20
BASE_MIN_POPULARITY = 100_000
FLOOR_MIN_POPULARITY = 10_000
MAX_DURATION_MINUTES = 150


# =============================================================================
# Relaxation Schedule
# =============================================================================


def relaxation_params_for_attempt(
    attempt: int,
    max_duration_minutes: int = MAX_DURATION_MINUTES,
) -> RelaxationParams:
    """
    Thresholds for a 0-based attempt index.

    Each attempt shortens the minimum duration by 5 minutes (floor 20),
    divides the view floor by 10 (floor 10k) and widens the publish window
    by one month.
    """
    return RelaxationParams(
        min_duration_minutes=max(FLOOR_MIN_DURATION_MINUTES, BASE_MIN_DURATION_MINUTES - 5 * attempt),
        max_duration_minutes=max_duration_minutes,
        min_popularity=max(FLOOR_MIN_POPULARITY, BASE_MIN_POPULARITY // (10 ** attempt)),
        months_back=attempt + 1,
    )


# =============================================================================
# Content-Origin Heuristic
# =============================================================================


class OriginFilterPolicy(BaseModel):
    """
    Deny-list describing content to exclude by origin.
    This is a product policy; expect false positives on common words.
    """

    keywords: List[str] = Field(default_factory=list)
    script_ranges: List[Tuple[int, int]] = Field(default_factory=list)
    min_script_chars: int = Field(default=3, ge=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OriginFilterPolicy":
        return cls(
            keywords=settings.EXCLUDED_ORIGIN_KEYWORDS,
            script_ranges=settings.EXCLUDED_SCRIPT_RANGES,
            min_script_chars=settings.EXCLUDED_SCRIPT_MIN_CHARS,
        )

    def keyword_pattern(self) -> Optional[Pattern[str]]:
        if not self.keywords:
            return None
        alternatives = "|".join(re.escape(k.lower()) for k in self.keywords)
        return re.compile(rf"\b(?:{alternatives})\b")


DEFAULT_ORIGIN_POLICY = OriginFilterPolicy.from_settings(get_settings())


def _count_script_chars(text: str, ranges: Sequence[Tuple[int, int]]) -> int:
    count = 0
    for char in text:
        code = ord(char)
        if any(low <= code <= high for low, high in ranges):
            count += 1
    return count


def is_likely_excluded_origin(
    text: str,
    policy: OriginFilterPolicy = DEFAULT_ORIGIN_POLICY,
) -> bool:
    """
    True when text mentions a deny-listed keyword as a whole word, or
    contains at least `min_script_chars` characters from a deny-listed
    Unicode script.
    """
    if not text:
        return False

    pattern = policy.keyword_pattern()
    if pattern is not None and pattern.search(text.lower()):
        return True

    return _count_script_chars(text, policy.script_ranges) >= policy.min_script_chars


# =============================================================================
# Combined Filter
# =============================================================================


def passes_filters(
    result: VideoSearchResult,
    params: RelaxationParams,
    policy: OriginFilterPolicy = DEFAULT_ORIGIN_POLICY,
) -> bool:
    """Apply duration window, popularity floor and origin heuristic."""
    # Filter: Duration window
    if not params.min_duration_minutes <= result.duration_minutes <= params.max_duration_minutes:
        return False

    # Filter: Popularity floor
    if result.view_count < params.min_popularity:
        return False

    # Filter: Content origin
    text = " ".join((result.title, result.description, result.creator))
    return not is_likely_excluded_origin(text, policy)


def format_duration(minutes: float) -> str:
    """Display string used in CachedVideo, e.g. '42 minutes'."""
    return f"{int(minutes)} minutes"
