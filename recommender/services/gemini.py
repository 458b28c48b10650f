"""
Gemini LLM provider.
Serves two channels: free-form text (query synthesis) and per-video
justification text (annotation).
"""
import logging
from typing import Optional

import httpx
from google import genai
from google.genai import errors as genai_errors

from recommender.config.settings import Settings, get_settings
from recommender.core.exceptions import AnnotationProviderError, ProviderConfigurationError
from recommender.models.schemas import VideoSearchResult

logger = logging.getLogger(__name__)


def build_annotation_prompt(video: VideoSearchResult, topic: str) -> str:
    return (
        "Analyze this YouTube podcast and explain why it's valuable for someone "
        f"interested in {topic}.\n\n"
        f'Video: "{video.title}" by {video.creator}\n'
        f"Views: {video.view_count:,}\n"
        f"Duration: {int(video.duration_minutes)} minutes\n"
        f"Description: {video.description}\n\n"
        "Provide a compelling 2-3 sentence explanation covering:\n"
        "1. What makes this content valuable\n"
        "2. Key topics or insights covered\n"
        "3. Why the high view count indicates quality\n\n"
        "Be specific and enthusiastic. Respond only with the reasoning text."
    )


class GeminiAnnotationProvider:
    """
    Gemini-backed TextGenerator and AnnotationProvider.

    The SDK client is created lazily so the service can start without a key;
    calls fail with ProviderConfigurationError until one is set.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._settings.GEMINI_API_KEY:
                raise ProviderConfigurationError("Gemini", "GEMINI_API_KEY")
            self._client = genai.Client(api_key=self._settings.GEMINI_API_KEY)
        return self._client

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        """
        Run a single prompt and return the stripped response text.

        Raises:
            AnnotationProviderError: On API, transport or response errors
        """
        client = self._get_client()
        model = model or self._settings.GEMINI_QUERY_MODEL

        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
            )
        except genai_errors.APIError as e:
            logger.warning(f"Gemini API error: model={model}, code={e.code}")
            raise AnnotationProviderError(f"{e.code}: {e.message}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Gemini transport error: model={model}, error={e}")
            raise AnnotationProviderError(str(e)) from e
        except (ValueError, OSError) as e:
            # SDK request building and response parsing errors, non-httpx transports
            logger.warning(f"Gemini call failed: model={model}, error={e!r}")
            raise AnnotationProviderError(str(e)) from e

        return (response.text or "").strip()

    async def annotate(self, video: VideoSearchResult, topic: str) -> str:
        """Justification for recommending `video` to someone into `topic`."""
        return await self.generate_text(
            build_annotation_prompt(video, topic),
            model=self._settings.GEMINI_ANALYSIS_MODEL,
        )
