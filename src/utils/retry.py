"""Retry utilities with exponential backoff for provider calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from src.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    retryable_exceptions: tuple = (
        UpstreamUnavailable,
        httpx.TimeoutException,
        httpx.ConnectError,
        ConnectionError,
        TimeoutError,
    )

    def delay_for(self, attempt: int) -> float:
        """Backoff delay before the next attempt (attempt is zero-based)."""
        return min(self.base_delay * (self.exponential_base**attempt), self.max_delay)


DEFAULT_RETRY_CONFIG = RetryConfig()


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    operation_name: str = "operation",
    **kwargs: Any,
) -> T:
    """Execute an async function with retry logic and exponential backoff.

    Non-retryable exceptions propagate immediately. When every attempt fails
    with a retryable exception, the last one is re-raised.

    Args:
        func: Async function to execute
        *args: Positional arguments for the function
        config: Retry configuration
        operation_name: Name of the operation for logging
        **kwargs: Keyword arguments for the function
    """
    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt >= config.max_retries:
                logger.error(
                    f"{operation_name}: Failed after {config.max_retries + 1} attempts: {e}"
                )
                raise
            delay = config.delay_for(attempt)
            logger.warning(
                f"{operation_name}: {type(e).__name__}, "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{config.max_retries + 1})"
            )
            await asyncio.sleep(delay)
        except Exception as e:
            logger.error(f"{operation_name}: Non-retryable error: {e}")
            raise

    raise RuntimeError(f"{operation_name}: retry loop exited without a result")
