"""Shared persistent httpx client for provider calls.

The generative and embedding SDK clients are built on top of this pooled
client so every request reuses connections instead of paying a new TLS
handshake.
"""

import httpx

from src.constants import API_TIMEOUT_LLM

# Connection pool limits
_POOL_LIMITS = httpx.Limits(
    max_connections=20,
    max_keepalive_connections=10,
    keepalive_expiry=30,
)

_provider_client: httpx.AsyncClient | None = None


def get_provider_client() -> httpx.AsyncClient:
    """Get persistent httpx client for generative/embedding provider calls."""
    global _provider_client
    if _provider_client is None:
        _provider_client = httpx.AsyncClient(
            timeout=API_TIMEOUT_LLM,
            limits=_POOL_LIMITS,
            http2=False,
        )
    return _provider_client


async def close_all_clients() -> None:
    """Close persistent httpx clients. Call during app shutdown."""
    global _provider_client
    if _provider_client is not None:
        await _provider_client.aclose()
        _provider_client = None
