"""Generative and embedding provider access."""

from src.services.llm.client import LlmClient, get_llm_client, parse_json_object

__all__ = ["LlmClient", "get_llm_client", "parse_json_object"]
