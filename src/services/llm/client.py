"""Generative and embedding provider client.

Thin wrapper around the OpenAI-compatible chat completion and embedding
APIs. Both SDK clients share the pooled httpx client.
"""

import json
import time
from typing import Any

import openai
from openai import AsyncOpenAI

from src.config import get_settings
from src.errors import MalformedResponse, UpstreamUnavailable
from src.utils.http_client import get_provider_client
from src.utils.logging import get_logger
from src.utils.metrics import metrics

logger = get_logger(__name__)


class LlmClient:
    """Structured-output completions and text embeddings.

    SDK clients are created lazily so a missing key only fails the calls
    that need it.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        temperature: float | None = None,
        embedding_api_key: str | None = None,
        embedding_base_url: str | None = None,
        embedding_model: str | None = None,
        embedding_dimensions: int | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.llm_api_key
        self._base_url = base_url if base_url is not None else settings.llm_base_url
        self.model = model or settings.llm_model
        self._timeout = timeout or settings.llm_timeout
        self._temperature = temperature if temperature is not None else settings.llm_temperature

        self._embedding_api_key = (
            embedding_api_key if embedding_api_key is not None else settings.embedding_key
        )
        self._embedding_base_url = (
            embedding_base_url if embedding_base_url is not None else settings.embedding_base_url
        )
        self.embedding_model = embedding_model or settings.embedding_model
        self.embedding_dimensions = embedding_dimensions or settings.embedding_dimensions

        self._chat_client: AsyncOpenAI | None = None
        self._embedding_client: AsyncOpenAI | None = None

    def _get_chat_client(self) -> AsyncOpenAI:
        if self._chat_client is None:
            if not self._api_key:
                raise UpstreamUnavailable("LLM_API_KEY is not configured")
            self._chat_client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
                http_client=get_provider_client(),
            )
        return self._chat_client

    def _get_embedding_client(self) -> AsyncOpenAI:
        if self._embedding_client is None:
            if not self._embedding_api_key:
                raise UpstreamUnavailable("EMBEDDING_API_KEY is not configured")
            self._embedding_client = AsyncOpenAI(
                api_key=self._embedding_api_key,
                base_url=self._embedding_base_url,
                timeout=self._timeout,
                max_retries=0,
                http_client=get_provider_client(),
            )
        return self._embedding_client

    async def complete_json(
        self,
        system: str,
        user: str,
        *,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Run a chat completion constrained to a JSON object and parse it."""
        client = self._get_chat_client()
        start = time.monotonic()
        status = "error"
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=self._temperature if temperature is None else temperature,
                response_format={"type": "json_object"},
            )
            status = "success"
        except openai.APIStatusError as e:
            logger.error(f"Generative provider error: {e.status_code} {e.response.text[:500]}")
            raise UpstreamUnavailable(f"Generative provider error: {e.status_code}") from e
        except openai.APIError as e:
            logger.error(f"Generative provider unreachable: {e}")
            raise UpstreamUnavailable("Generative provider unreachable") from e
        finally:
            metrics.provider_requests_total.inc(operation="completion", status=status)
            metrics.provider_duration_seconds.observe(time.monotonic() - start, operation="completion")

        if not response.choices:
            raise MalformedResponse("Generative provider returned no choices")
        content = response.choices[0].message.content or ""
        logger.debug(f"Generative response: {content[:500]}")
        return parse_json_object(content)

    async def embed(self, text: str) -> list[float]:
        """Embed text into a vector of the configured dimension."""
        client = self._get_embedding_client()
        start = time.monotonic()
        status = "error"
        try:
            response = await client.embeddings.create(model=self.embedding_model, input=text)
            status = "success"
        except openai.APIStatusError as e:
            logger.error(f"Embedding provider error: {e.status_code} {e.response.text[:500]}")
            raise UpstreamUnavailable(f"Embedding provider error: {e.status_code}") from e
        except openai.APIError as e:
            logger.error(f"Embedding provider unreachable: {e}")
            raise UpstreamUnavailable("Embedding provider unreachable") from e
        finally:
            metrics.provider_requests_total.inc(operation="embedding", status=status)
            metrics.provider_duration_seconds.observe(time.monotonic() - start, operation="embedding")

        if not response.data:
            raise MalformedResponse("Embedding provider returned no data")
        embedding = list(response.data[0].embedding)
        if len(embedding) != self.embedding_dimensions:
            raise MalformedResponse(
                f"Embedding has {len(embedding)} dimensions, expected {self.embedding_dimensions}"
            )
        return embedding


def parse_json_object(content: str) -> dict[str, Any]:
    """Parse a JSON object, tolerating a fenced code block around it."""
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Generative response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponse("Generative response is not a JSON object")
    return data


_llm_client: LlmClient | None = None


def get_llm_client() -> LlmClient:
    """Dependency returning the process-wide provider client."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LlmClient()
    return _llm_client
