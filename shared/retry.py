"""
Retry logic with exponential backoff.

Decorator for automatic retry with exponential backoff on retryable errors.
"""

import asyncio
import functools
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from shared.errors import RateLimitError, RetryableError
from shared.logging import get_logger

T = TypeVar("T")
logger = get_logger("retry")


def _backoff_delay(error: Exception, attempt: int, base_delay: float) -> float:
    """Delay before the next attempt; a server-provided Retry-After wins."""
    if isinstance(error, RateLimitError) and error.retry_after:
        return float(error.retry_after)
    return base_delay * (2 ** attempt)


def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 2,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RetryableError,)
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Base delay in seconds for exponential backoff (default: 2)
        retryable_exceptions: Exception types to retry on (default: RetryableError,
            which includes RateLimitError)

    Returns:
        Decorated function

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=2)
        async def call_api():
            return await api_client.call(...)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        def on_failure(error: Exception, attempt: int) -> Optional[float]:
            # Returns the delay to sleep, or None when attempts are exhausted
            if attempt < max_attempts - 1:
                delay = _backoff_delay(error, attempt, base_delay)
                logger.warning(
                    f"Retry attempt {attempt + 1}/{max_attempts} for {func.__name__} "
                    f"after {delay}s delay",
                    extra={"error": str(error), "attempt": attempt + 1}
                )
                return delay
            logger.error(
                f"All {max_attempts} retry attempts failed for {func.__name__}",
                extra={"error": str(error)}
            )
            return None

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> T:
                for attempt in range(max_attempts):
                    try:
                        return await func(*args, **kwargs)
                    except retryable_exceptions as e:
                        delay = on_failure(e, attempt)
                        if delay is None:
                            raise
                        await asyncio.sleep(delay)
                raise RuntimeError(f"Function {func.__name__} failed after {max_attempts} attempts")

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    delay = on_failure(e, attempt)
                    if delay is None:
                        raise
                    time.sleep(delay)
            raise RuntimeError(f"Function {func.__name__} failed after {max_attempts} attempts")

        return sync_wrapper

    return decorator
