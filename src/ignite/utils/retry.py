"""
Retry utilities with exponential backoff for handling transient failures.

Provides error classification, backoff calculation, the query/mutation retry
policies applied on top of the request queue, and a decorator for outbound
calls (LLM providers).
"""

import os
import asyncio
import logging
import random
from functools import wraps
from typing import Awaitable, Callable, Optional, TypeVar
from dataclasses import dataclass

import anthropic
import httpx

from ..errors.exceptions import (
    ApiConnectionError,
    ApiTimeoutError,
    HttpStatusError,
    QueueFullError,
    RequestCancelledError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryConfig:
    """Configuration for request queue retry behavior"""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    max_jitter: float = 1.0

    @classmethod
    def from_env(cls) -> "RetryConfig":
        """Build config from MAX_RETRIES / RETRY_* environment variables"""
        return cls(
            max_retries=int(os.getenv("MAX_RETRIES", "3")),
            base_delay=float(os.getenv("RETRY_BASE_DELAY", "1.0")),
            max_delay=float(os.getenv("RETRY_MAX_DELAY", "10.0")),
            exponential_base=float(os.getenv("RETRY_BACKOFF_BASE", "2.0")),
            max_jitter=float(os.getenv("RETRY_MAX_JITTER", "1.0")),
        )


# HTTP status codes that should be retried besides 5xx
RETRYABLE_STATUS_CODES = {
    408,  # Request Timeout
    429,  # Too Many Requests (rate limit)
}

# HTTP status codes that are never retried
NON_RETRYABLE_STATUS_CODES = {
    400,  # Bad Request
    401,  # Unauthorized
    403,  # Forbidden
}

# Messages that mark an authentication failure, which is permanent
AUTH_ERROR_KEYWORDS = ("credentials", "Unauthorized", "password")

def status_code_of(error: Exception) -> Optional[int]:
    """
    Extract an HTTP status code from an error, if it carries one.

    Works for HttpStatusError, httpx.HTTPStatusError and SDK errors exposing
    a `status_code` attribute (anthropic.APIStatusError).
    """
    if isinstance(error, HttpStatusError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status_code", None)
    return status if isinstance(status, int) else None


def is_auth_error(error: Exception) -> bool:
    """Whether the error message describes an authentication failure"""
    message = str(error)
    return any(keyword in message for keyword in AUTH_ERROR_KEYWORDS)


def is_retryable_error(error: Exception) -> bool:
    """
    Determine if an error should be retried.

    Authentication failures are permanent. Network errors and timeouts are
    transient. HTTP errors are retried for 5xx, 408 and 429 only.
    Classification goes by exception type and status; anything else is terminal.

    Args:
        error: The exception to check

    Returns:
        True if the error should be retried
    """
    if is_auth_error(error):
        return False

    status = status_code_of(error)
    if status is not None:
        if status in NON_RETRYABLE_STATUS_CODES:
            return False
        return status >= 500 or status in RETRYABLE_STATUS_CODES

    if isinstance(error, (ApiConnectionError, ApiTimeoutError)):
        return True
    if isinstance(error, (httpx.TransportError, ConnectionError, asyncio.TimeoutError)):
        return True

    # Anthropic SDK network failures carry no status (APITimeoutError is a subclass)
    return isinstance(error, anthropic.APIConnectionError)


def calculate_delay(
    attempt: int,
    base_delay: float,
    exponential_base: float,
    max_delay: float,
    jitter: float = 0.0
) -> float:
    """
    Calculate delay for a retry attempt with exponential backoff.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        exponential_base: Base for exponential backoff
        max_delay: Cap applied before jitter is added
        jitter: Additive jitter in seconds

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    return delay + jitter


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry policy for a class of calls (queries or mutations).

    `should_retry` is asked with the number of failures seen before the
    current one (0 for the first failure). Cancelled requests and queue-full
    rejections always reach the caller.
    """
    name: str
    max_failures: int
    max_delay: float
    retry_server_errors: bool = True
    base_delay: float = 1.0

    def should_retry(self, failure_count: int, error: Exception) -> bool:
        if isinstance(error, (RequestCancelledError, QueueFullError)):
            return False

        status = status_code_of(error)

        if status is not None and 400 <= status < 500 and status not in RETRYABLE_STATUS_CODES:
            return False

        if not self.retry_server_errors:
            if (status is not None and status >= 500) or "Server error" in str(error):
                return False

        return failure_count < self.max_failures

    def retry_delay(self, attempt_index: int) -> float:
        return min(self.base_delay * (2 ** attempt_index), self.max_delay)


# Reads: the queue already retries server errors, so the query layer does not
QUERY_RETRY_POLICY = RetryPolicy(
    name="query",
    max_failures=3,
    max_delay=30.0,
    retry_server_errors=False,
)

MUTATION_RETRY_POLICY = RetryPolicy(
    name="mutation",
    max_failures=2,
    max_delay=10.0,
)


async def run_with_policy(
    policy: RetryPolicy,
    operation: Callable[[], Awaitable[T]],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an async operation, retrying according to a RetryPolicy.

    Args:
        policy: Policy deciding whether and when to retry
        operation: Zero-argument coroutine function
        sleep: Sleep function (overridable in tests)

    Returns:
        The operation result
    """
    failure_count = 0

    while True:
        try:
            return await operation()
        except Exception as e:
            if not policy.should_retry(failure_count, e):
                raise

            delay = policy.retry_delay(failure_count)
            failure_count += 1
            logger.debug(
                f"{policy.name} failed ({e}), retry {failure_count} in {delay:.2f}s"
            )
            await sleep(delay)


def retry_with_backoff(
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    exponential_base: Optional[float] = None,
    jitter: bool = True
):
    """
    Decorator for retrying async functions with exponential backoff.

    Reads configuration from environment variables if not provided:
    - MAX_RETRIES: Maximum number of retry attempts (default: 3)
    - RETRY_BASE_DELAY: Base delay in seconds (default: 1.0)
    - RETRY_BACKOFF_BASE: Exponential base for backoff (default: 2.0)
    - RETRY_MAX_DELAY: Maximum delay between retries (default: 60.0)

    Example:
        @retry_with_backoff(max_retries=3, base_delay=1.0)
        async def evaluate():
            ...
    """
    if max_retries is None:
        max_retries = int(os.getenv("MAX_RETRIES", "3"))
    if base_delay is None:
        base_delay = float(os.getenv("RETRY_BASE_DELAY", "1.0"))
    if max_delay is None:
        max_delay = float(os.getenv("RETRY_MAX_DELAY", "60.0"))
    if exponential_base is None:
        exponential_base = float(os.getenv("RETRY_BACKOFF_BASE", "2.0"))

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                try:
                    result = await func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")

                    return result

                except Exception as e:
                    if attempt >= max_retries:
                        logger.error(f"{func.__name__} failed after {max_retries + 1} attempts")
                        raise

                    if not is_retryable_error(e):
                        logger.debug(f"{func.__name__} failed with non-retryable error: {e}")
                        raise

                    delay = calculate_delay(attempt, base_delay, exponential_base, max_delay)
                    if jitter:
                        # Scale into [50%, 100%] of the computed delay
                        delay = delay * (0.5 + random.random() * 0.5)

                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}/{max_retries + 1}, "
                        f"retrying in {delay:.2f}s: {e}"
                    )

                    await asyncio.sleep(delay)

        return wrapper

    return decorator
