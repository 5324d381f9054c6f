"""Redis cache for generative answer interpretations.

Values are stored as JSON under hashed keys. When Redis cannot be reached
at startup the cache stays disconnected and every lookup is a miss.
"""

import hashlib
import json
from collections.abc import Callable
from datetime import timedelta
from functools import wraps
from typing import Any, TypeVar

import redis.asyncio as redis

from src.config import get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

CACHE_TTL_DEFAULT = timedelta(hours=6)
CACHE_TTL_LONG = timedelta(hours=24)


class RedisCache:
    """JSON values in Redis, with misses instead of errors when it is down."""

    def __init__(self, url: str | None = None) -> None:
        self._url = url
        self._client: redis.Redis | None = None
        self.connected = False

    def _redis(self) -> redis.Redis:
        if self._client is None:
            url = self._url or str(get_settings().redis_url)
            self._client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return self._client

    async def connect(self) -> bool:
        """Ping Redis once; the result decides whether lookups hit the server."""
        try:
            await self._redis().ping()
        except Exception as e:
            logger.warning(f"Redis cache unavailable, interpretations will not be cached: {e}")
            self.connected = False
        else:
            self.connected = True
        return self.connected

    async def ping(self) -> bool:
        return await self._redis().ping()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self.connected = False

    async def get(self, key: str) -> Any | None:
        if not self.connected:
            return None
        try:
            raw = await self._redis().get(key)
        except Exception as e:
            logger.debug(f"Cache read failed for {key}: {e}")
            return None
        return json.loads(raw) if raw else None

    async def set(self, key: str, value: Any, ttl: timedelta = CACHE_TTL_DEFAULT) -> bool:
        if not self.connected:
            return False
        try:
            await self._redis().setex(key, int(ttl.total_seconds()), json.dumps(value))
        except Exception as e:
            logger.debug(f"Cache write failed for {key}: {e}")
            return False
        return True


# Global cache instance, connected in the application lifespan
cache = RedisCache()


def make_cache_key(namespace: str, *args: Any) -> str:
    """Namespace plus a digest of the JSON-encoded arguments."""
    payload = json.dumps(args, sort_keys=True, default=str)
    return f"{namespace}:{hashlib.sha256(payload.encode()).hexdigest()[:32]}"


def cached(namespace: str, ttl: timedelta = CACHE_TTL_DEFAULT) -> Callable[[F], F]:
    """Cache an async method's JSON-safe result, keyed by its positional arguments."""

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(self: Any, *args: Any) -> Any:
            key = make_cache_key(namespace, *args)
            hit = await cache.get(key)
            if hit is not None:
                logger.debug(f"Cache hit: {key}")
                return hit

            result = await func(self, *args)
            if result is not None:
                await cache.set(key, result, ttl)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
