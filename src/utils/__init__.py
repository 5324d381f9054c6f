"""Utility modules for the Moodwatch application."""

from src.utils.logging import get_logger, LogContext, setup_logging
from src.utils.retry import retry_async, RetryConfig

__all__ = [
    # Logging
    "get_logger",
    "LogContext",
    "setup_logging",
    # Retry
    "retry_async",
    "RetryConfig",
]
