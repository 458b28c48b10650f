"""
Search query synthesis.
Turns (topic, language, modifier) into a short YouTube search phrase using
the LLM channel, with a deterministic fallback.
"""
import logging
import re

from recommender.core.exceptions import AnnotationProviderError, ProviderConfigurationError
from recommender.models.interfaces import TextGenerator

logger = logging.getLogger(__name__)

SEED_TERM = "podcast 2025"
NEGATIVE_TERMS = "-hindi -india"

# Modifier per search attempt, in order
QUERY_MODIFIERS = ("", "trending", "popular", "best", "viral")

INDONESIAN_NAMES = {"indonesian", "indonesia", "bahasa indonesia", "id"}
LIST_MARKER = re.compile(r"^(?:[-*\u2022]|\d+[.)])\s+")


def is_indonesian(language: str) -> bool:
    return language.strip().lower() in INDONESIAN_NAMES


def modifier_for_attempt(attempt: int) -> str:
    """Modifier for a 0-based attempt index; clamps to the last one."""
    return QUERY_MODIFIERS[min(attempt, len(QUERY_MODIFIERS) - 1)]


def fallback_query(topic: str) -> str:
    return f"{SEED_TERM} {topic.lower()}"


def build_query_prompt(topic: str, language: str, modifier: str = "") -> str:
    requirements = [
        f'- Include "{SEED_TERM}" in the query',
        "- Add 1-2 relevant trending keywords based on content preference",
        "- Keep it short (4-6 words max)",
        "- Focus on quality content creators if applicable",
    ]
    if modifier:
        requirements.append(f'- Include the word "{modifier}" to vary the results')
    if not is_indonesian(language):
        requirements.append(f'- End the query with "{NEGATIVE_TERMS}"')

    return (
        "Generate ONE concise YouTube search query for finding trending podcast content.\n\n"
        "Input:\n"
        f"- Content: {topic}\n"
        f"- Language: {language}\n\n"
        "Requirements:\n"
        + "\n".join(requirements)
        + "\n\n"
        "Example outputs:\n"
        f'- For Tech/English: "{SEED_TERM} ai startups {NEGATIVE_TERMS}"\n'
        f'- For Entertainment/Indonesian: "{SEED_TERM} komedi indonesia"\n\n'
        "Return ONLY the search query, no explanation."
    )


def clean_query(raw: str) -> str:
    """First non-empty line, without surrounding quotes or list markers."""
    for line in raw.splitlines():
        line = LIST_MARKER.sub("", line.strip()).strip("\"'`").strip()
        if line:
            return line
    return ""


class QuerySynthesizer:
    """Builds search queries through the LLM text channel."""

    def __init__(self, generator: TextGenerator) -> None:
        self._generator = generator

    async def synthesize(self, topic: str, language: str, modifier: str = "") -> str:
        """
        Generate a search query.

        Falls back to "podcast 2025 <topic>" when the provider fails or
        returns nothing usable.
        """
        prompt = build_query_prompt(topic, language, modifier)
        try:
            raw = await self._generator.generate_text(prompt)
        except (AnnotationProviderError, ProviderConfigurationError) as e:
            logger.warning(f"Query synthesis failed, using fallback: {e}")
            return fallback_query(topic)

        query = clean_query(raw or "")
        if not query:
            logger.info("Query synthesis returned empty text, using fallback")
            return fallback_query(topic)
        return query
