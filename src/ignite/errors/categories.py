"""
Error categorization for user-facing messages.
"""

from enum import Enum
from typing import Tuple

from .exceptions import (
    ApiConnectionError,
    ApiTimeoutError,
    CoachingError,
    HttpStatusError,
    QueueFullError,
    RequestCancelledError,
)


class ErrorCategory(Enum):
    """Categories of errors surfaced to workbook users"""
    AUTH = "authentication"
    SUBSCRIPTION = "subscription"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    TIMEOUT = "timeout"
    QUEUE = "queue"
    CANCELLED = "cancelled"
    COACHING = "coaching"
    INTERNAL = "internal"


def categorize_error(error: Exception) -> Tuple[ErrorCategory, str]:
    """
    Categorize an error and provide a user-friendly explanation.

    Args:
        error: The exception to categorize

    Returns:
        Tuple of (ErrorCategory, explanation)
    """
    if isinstance(error, HttpStatusError):
        status = error.status_code
        if status == 401:
            return ErrorCategory.AUTH, "Your session has expired - please log in again"
        if status == 402:
            return ErrorCategory.SUBSCRIPTION, "An active subscription is required for this feature"
        if status == 403:
            return ErrorCategory.AUTH, "You don't have permission to do that"
        if status == 404:
            return ErrorCategory.NOT_FOUND, "The requested item could not be found"
        if status == 429:
            return ErrorCategory.RATE_LIMIT, "Too many requests - please slow down"
        if status == 408:
            return ErrorCategory.TIMEOUT, "The server took too long to respond"
        if status >= 500:
            return ErrorCategory.SERVER, "The server ran into a problem"
        return ErrorCategory.VALIDATION, "The request was rejected"

    if isinstance(error, QueueFullError):
        return ErrorCategory.QUEUE, "Too many pending requests - please try again shortly"

    if isinstance(error, RequestCancelledError):
        return ErrorCategory.CANCELLED, "The request was cancelled"

    if isinstance(error, (ApiTimeoutError, TimeoutError)):
        return ErrorCategory.TIMEOUT, "The request timed out"

    if isinstance(error, (ApiConnectionError, ConnectionError)):
        return ErrorCategory.NETWORK, "Network error - please check your connection"

    if isinstance(error, CoachingError):
        return ErrorCategory.COACHING, "The AI coach is unavailable right now"

    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION, "Some of the information provided is invalid"

    error_str = str(error).lower()

    if "unauthorized" in error_str or "credentials" in error_str:
        return ErrorCategory.AUTH, "Authentication failed - please log in again"

    if any(keyword in error_str for keyword in ["connection", "network", "unreachable"]):
        return ErrorCategory.NETWORK, "Network error - please check your connection"

    return ErrorCategory.INTERNAL, "An unexpected error occurred"
