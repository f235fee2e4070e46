"""Retry decorator with exponential backoff."""
import time
import functools

import requests

from .exceptions import FetchError
from .logger import get_logger

logger = get_logger()

# Exceptions that are safe to retry for idempotent reads
RETRYABLE_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    FetchError,
)


def retry_with_backoff(max_retries=0, initial_delay=1.0, backoff_factor=2.0, retryable_exceptions=RETRYABLE_ERRORS,
                       deadline=None):
    """Decorator for exponential backoff retries.

    ``max_retries`` counts extra attempts; 0 means a single call.
    Errors carrying a 4xx ``status_code`` (other than 429) are raised at once.
    With a ``deadline``, the last error is raised instead of sleeping past it.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    status = getattr(e, "status_code", None)
                    if status is not None and status < 500 and status != 429:
                        raise

                    if attempt == max_retries:
                        break

                    wait_time = delay * (backoff_factor ** attempt)
                    remaining = deadline.remaining() if deadline is not None else None
                    if remaining is not None and wait_time >= remaining:
                        logger.warning(
                            f"Not retrying {func.__name__}: backoff of {wait_time:.1f}s exceeds "
                            f"the {remaining:.1f}s left before the deadline"
                        )
                        break

                    logger.warning(
                        f"Transient failure in {func.__name__} (Attempt {attempt + 1}): {e}. "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    time.sleep(wait_time)

            if max_retries:
                logger.error(f"Permanently failed {func.__name__} after {attempt + 1} attempts.")
            raise last_exception
        return wrapper
    return decorator
