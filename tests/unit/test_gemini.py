"""
Unit tests for the Gemini provider with a mocked SDK client.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from conftest import make_result
from recommender.config.settings import Settings
from recommender.core.exceptions import AnnotationProviderError, ProviderConfigurationError
from recommender.services.gemini import GeminiAnnotationProvider, build_annotation_prompt


def make_client(text=None, error=None) -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=text),
        side_effect=error,
    )
    return client


class TestGeminiAnnotationProvider:
    @pytest.mark.asyncio
    async def test_generate_text_uses_query_model(self):
        client = make_client(text="  podcast 2025 ai -hindi -india \n")
        provider = GeminiAnnotationProvider(settings=Settings(), client=client)

        assert await provider.generate_text("prompt") == "podcast 2025 ai -hindi -india"
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash-exp"
        assert kwargs["contents"] == "prompt"

    @pytest.mark.asyncio
    async def test_annotate_uses_analysis_model(self):
        client = make_client(text="A sharp conversation about agents.")
        provider = GeminiAnnotationProvider(settings=Settings(), client=client)

        reasoning = await provider.annotate(make_result(1), "Tech")

        assert reasoning == "A sharp conversation about agents."
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert "Episode 1" in kwargs["contents"]

    @pytest.mark.asyncio
    async def test_missing_text_is_empty_string(self):
        provider = GeminiAnnotationProvider(settings=Settings(), client=make_client(text=None))
        assert await provider.generate_text("prompt") == ""

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self):
        error = genai_errors.ServerError(
            503,
            {"error": {"code": 503, "message": "The model is overloaded", "status": "UNAVAILABLE"}},
        )
        provider = GeminiAnnotationProvider(settings=Settings(), client=make_client(error=error))

        with pytest.raises(AnnotationProviderError) as exc_info:
            await provider.generate_text("prompt")
        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        provider = GeminiAnnotationProvider(
            settings=Settings(),
            client=make_client(error=httpx.ConnectError("connection refused")),
        )
        with pytest.raises(AnnotationProviderError):
            await provider.generate_text("prompt")

    @pytest.mark.asyncio
    async def test_sdk_value_error_is_wrapped(self):
        provider = GeminiAnnotationProvider(
            settings=Settings(),
            client=make_client(error=ValueError("unexpected response payload")),
        )
        with pytest.raises(AnnotationProviderError) as exc_info:
            await provider.generate_text("prompt")
        assert "unexpected response payload" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        provider = GeminiAnnotationProvider(settings=Settings(GEMINI_API_KEY=None))
        with pytest.raises(ProviderConfigurationError):
            await provider.generate_text("prompt")


def test_annotation_prompt_mentions_video_facts():
    prompt = build_annotation_prompt(make_result(3, views=1_234_567, duration=75.5), "Business")
    assert "interested in Business" in prompt
    assert '"Episode 3" by Creator 3' in prompt
    assert "1,234,567" in prompt
    assert "75 minutes" in prompt
