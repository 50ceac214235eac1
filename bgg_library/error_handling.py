"""
Error taxonomy and common error handling utilities for the BGG Library package.
"""

import logging
import time
from typing import Optional, Any, Callable
from functools import wraps

logger = logging.getLogger(__name__)


class BGGError(Exception):
    """Base class for every error raised by this package."""
    retryable = False


class NetworkError(BGGError):
    """Connection failure, timeout or 5xx answer from BGG."""
    retryable = True


class RateLimited(NetworkError):
    """BGG asked us to slow down (HTTP 429 or a rate-limit body)."""

    def __init__(self, message: str = "BGG API rate limit exceeded", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class CollectionNotReady(NetworkError):
    """BGG has queued the collection export and keeps answering 202."""


class BGGHTTPError(BGGError):
    """Non-retryable HTTP error (4xx other than rate limiting)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(BGGError):
    """Malformed response, or mandatory fields missing from it."""


class NotFound(BGGError):
    """The requested item, user or row does not exist."""


class DuplicateAssociation(BGGError):
    """A (user, game) pair is already in the library. Absorbed by the library store."""


class InvalidRelationship(BGGError):
    """Rejected expansion relationship, e.g. a game expanding itself."""


class SyncFailed(BGGError):
    """The collection listing could not be fetched, so the whole sync was aborted."""


def is_retryable(exc: BaseException) -> bool:
    """Return True if the error is worth another attempt."""
    return isinstance(exc, BGGError) and exc.retryable


def call_with_retries(func: Callable, *args, max_retries: int = 3, retry_delay: float = 1.0,
                      sleep: Callable[[float], None] = time.sleep, **kwargs) -> Any:
    """
    Call a function, retrying transient BGG errors with exponential backoff.

    Args:
        func: Function to execute
        *args: Arguments for the function
        max_retries: Total number of attempts
        retry_delay: Base delay in seconds, doubled after each failed attempt
        sleep: Sleep function (injectable for tests)
        **kwargs: Keyword arguments for the function

    Returns:
        The function result

    Raises:
        The last error once attempts are exhausted, or any non-retryable error immediately
    """
    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            return func(*args, **kwargs)
        except BGGError as e:
            if not is_retryable(e) or attempt == attempts - 1:
                raise
            delay = retry_delay * (2 ** attempt)  # Exponential backoff
            retry_after = getattr(e, "retry_after", None)
            if retry_after:
                delay = max(delay, retry_after)
            logger.warning(f"Attempt {attempt + 1}/{attempts} of {getattr(func, '__name__', func)} failed: {e}; retrying in {delay:.1f}s")
            sleep(delay)


def handle_errors(default_return: Any = None, log_error: bool = True):
    """
    Decorator to handle common exceptions and provide consistent error logging.

    Args:
        default_return: Value to return on error
        log_error: Whether to log the error
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except BGGError as e:
                if log_error:
                    logger.error(f"Error in {func.__name__}: {e}")
                return default_return
        return wrapper
    return decorator
