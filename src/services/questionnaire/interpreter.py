"""Generative interpretation of answers to questions outside the catalog."""

from typing import Any

from src.constants import CACHE_NAMESPACE_INTERPRETATION
from src.errors import MalformedResponse
from src.services.llm import LlmClient
from src.services.questionnaire.catalog import ASK_ORDER, Category
from src.utils.cache import CACHE_TTL_LONG, cached
from src.utils.logging import get_logger

logger = get_logger(__name__)

INTERPRET_SYSTEM_PROMPT = f"""You map one question and answer from a movie and TV preference questionnaire onto preference categories.

Categories:
- mood: how the user's day is going
- content_type: movies, series or both
- watch_time: how much time they have
- genres: list of genre names
- company: watching alone or with whom
- watch_style: background, focused, nostalgic and so on
- language: language and subtitle preference
- underrated: interest in hidden gems
- age_rating: family, teen, mature or no preference

Only include categories the answer clearly addresses. Return JSON in this exact format:
{{"categories": {{"<category>": "<value>"}}}}
Use a list of strings for genres. Allowed keys: {", ".join(c.value for c in ASK_ORDER)}."""


def parse_interpretation(data: dict[str, Any]) -> dict[str, str | list[str]]:
    """Validate the generative mapping into category values.

    Unknown categories are ignored; anything else off-shape is malformed.
    """
    categories = data.get("categories")
    if not isinstance(categories, dict):
        raise MalformedResponse("Interpretation is missing a 'categories' object")

    result: dict[str, str | list[str]] = {}
    for key, value in categories.items():
        try:
            category = Category(key)
        except ValueError:
            logger.debug(f"Ignoring unknown interpreted category: {key}")
            continue

        if isinstance(value, str):
            if value.strip():
                result[category.value] = value.strip()
        elif isinstance(value, list) and all(isinstance(v, str) for v in value):
            if any(v.strip() for v in value):
                result[category.value] = [v.strip() for v in value if v.strip()]
        elif value is not None:
            raise MalformedResponse(f"Interpreted value for {key} is not text")
    return result


class AnswerInterpreter:
    """Interprets free-form answers through the generative provider."""

    def __init__(self, llm: LlmClient) -> None:
        self.llm = llm

    @cached(CACHE_NAMESPACE_INTERPRETATION, ttl=CACHE_TTL_LONG)
    async def interpret(self, question: str, answer: str) -> dict[str, str | list[str]]:
        """Map one answered question to category values (JSON-safe for caching)."""
        user_prompt = f"Q: {question}\nA: {answer}"
        data = await self.llm.complete_json(INTERPRET_SYSTEM_PROMPT, user_prompt, temperature=0.0)
        return parse_interpretation(data)
