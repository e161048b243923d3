"""
Error types, categorization and formatting for Ignite.
"""

from .exceptions import (
    IgniteError,
    ApiError,
    HttpStatusError,
    ApiConnectionError,
    ApiTimeoutError,
    QueueFullError,
    RequestCancelledError,
    CoachingError,
)
from .formatter import ErrorFormatter, Toast, format_error_for_user
from .categories import ErrorCategory, categorize_error

__all__ = [
    "IgniteError",
    "ApiError",
    "HttpStatusError",
    "ApiConnectionError",
    "ApiTimeoutError",
    "QueueFullError",
    "RequestCancelledError",
    "CoachingError",
    "ErrorFormatter",
    "Toast",
    "format_error_for_user",
    "ErrorCategory",
    "categorize_error",
]
