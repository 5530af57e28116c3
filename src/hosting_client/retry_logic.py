"""Retry logic with exponential backoff for hosting-API rate limits.

This module provides retry functionality specifically for handling rate limit
responses from the hosting API. It implements exponential backoff (1s, 2s, 4s)
and fails fast for every other error. Sha conflicts are never retried here:
the caller must re-read and decide.
"""

import time
import logging
from typing import Callable, TypeVar

from .errors import APIAccessError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RateLimitedError(Exception):
    """Internal signal that a response was rate limited (429 or exhausted quota)."""

    def __init__(self, status_code: int, retry_after: float = 0.0):
        super().__init__(f"HTTP {status_code} rate limit hit")
        self.status_code = status_code
        self.retry_after = retry_after


def retry_on_rate_limit(func: Callable[..., T], *args, **kwargs) -> T:
    """Retry function on rate limit with exponential backoff.

    Executes the given function with the provided arguments, retrying up to 3 times
    with exponential backoff (1s, 2s, 4s) when a rate limit error is encountered.
    When the API sent a Retry-After value larger than the backoff step, that
    value is used instead. Fails fast for all other errors.

    Args:
        func: The function to execute with retry logic
        *args: Positional arguments to pass to the function
        **kwargs: Keyword arguments to pass to the function

    Returns:
        The return value of the function

    Raises:
        APIAccessError: If rate limit persists after 3 retries
        Other exceptions: Passed through immediately without retry

    Example:
        >>> result = retry_on_rate_limit(client._request, "GET", "/branches")
    """
    max_retries = 3

    for retry_num in range(max_retries + 1):  # 0, 1, 2, 3 = 4 attempts total
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not _is_rate_limit_error(e):
                raise

            if retry_num >= max_retries:
                logger.error(
                    f"Rate limit persisted after {max_retries} retries, giving up"
                )
                raise APIAccessError(
                    "Hosting API failure (after 3 retries)", status_code=429
                ) from e

            wait_time = max(2 ** retry_num, getattr(e, 'retry_after', 0) or 0)
            logger.info(
                f"Rate limit hit, retrying in {wait_time}s "
                f"(retry {retry_num + 1}/{max_retries})"
            )
            time.sleep(wait_time)

    raise APIAccessError("Hosting API failure (after 3 retries)", status_code=429)


def _is_rate_limit_error(exception: Exception) -> bool:
    """Check if an exception represents a rate limit error.

    Args:
        exception: The exception to check

    Returns:
        True if this appears to be a rate limit error, False otherwise
    """
    if isinstance(exception, RateLimitedError):
        return True

    if hasattr(exception, 'status_code') and exception.status_code == 429:
        return True

    if hasattr(exception, 'response') and hasattr(exception.response, 'status_code'):
        if exception.response.status_code == 429:
            return True

    return False
