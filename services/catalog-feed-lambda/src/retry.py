"""
Retry utilities with exponential backoff and jitter.

Only configuration downloads are retried here. Catalog and feed calls are
not retried inside an invocation; re-delivery of the inbound event is the
retry mechanism for those.
"""

import functools
import logging
import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from exceptions import FeedSyncError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        jitter_range: Tuple[float, float] = (0.5, 1.5),
        retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
        non_retryable_exceptions: Tuple[Type[Exception], ...] = (),
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.jitter_range = jitter_range
        self.retryable_exceptions = retryable_exceptions
        self.non_retryable_exceptions = non_retryable_exceptions

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt with exponential backoff and jitter."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(*self.jitter_range)

        return delay

    def is_retryable(self, exception: Exception) -> bool:
        """Pipeline errors carry their own retryable flag; others go by type."""
        if isinstance(exception, self.non_retryable_exceptions):
            return False
        if isinstance(exception, FeedSyncError) and not exception.retryable:
            return False
        return isinstance(exception, self.retryable_exceptions)


def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        config: RetryConfig instance (overrides other params if provided)
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        retryable_exceptions: Tuple of exception types to retry
        on_retry: Callback function called on each retry

    Returns:
        Decorated function with retry logic

    Example:
        @retry_with_backoff(max_attempts=3, base_delay=1.0)
        def read_object(bucket, key):
            return s3.get_object(Bucket=bucket, Key=key)["Body"].read()
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            retryable_exceptions=retryable_exceptions,
        )

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not config.is_retryable(e):
                        logger.warning(
                            f"Non-retryable exception in {func.__name__}: {e}"
                        )
                        raise

                    if attempt == config.max_attempts - 1:
                        logger.error(
                            f"All {config.max_attempts} attempts failed for "
                            f"{func.__name__}: {e}"
                        )
                        raise

                    delay = config.calculate_delay(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1}/{config.max_attempts} failed for "
                        f"{func.__name__}: {e}. Retrying in {delay:.2f}s"
                    )
                    if on_retry:
                        on_retry(e, attempt + 1)
                    time.sleep(delay)

            raise RuntimeError("Retry loop completed without success or exception")

        return wrapper
    return decorator
