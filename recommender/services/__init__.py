"""Services package - business logic layer."""
from .filters import OriginFilterPolicy, passes_filters, relaxation_params_for_attempt
from .gemini import GeminiAnnotationProvider
from .query import QuerySynthesizer
from .recommendations import RecommendationService
from .youtube import YouTubeSearchProvider

__all__ = [
    "GeminiAnnotationProvider",
    "OriginFilterPolicy",
    "QuerySynthesizer",
    "RecommendationService",
    "YouTubeSearchProvider",
    "passes_filters",
    "relaxation_params_for_attempt",
]
