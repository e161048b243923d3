"""
Exception hierarchy shared across Ignite modules.
"""

from typing import Optional


class IgniteError(Exception):
    """Base exception for Ignite"""
    pass


class ApiError(IgniteError):
    """Base exception for Ignite backend API errors"""
    pass


class HttpStatusError(ApiError):
    """Backend answered with a non-2xx status"""

    def __init__(self, status_code: int, message: str, path: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.path = path
        super().__init__(f"{status_code}: {message}")

    @property
    def name(self) -> str:
        """Error name in the HttpError<status> form used by the retry classifier"""
        return f"HttpError{self.status_code}"


class ApiConnectionError(ApiError):
    """Request never reached the backend (DNS, refused connection, reset)"""
    pass


class ApiTimeoutError(ApiError):
    """Request exceeded its timeout"""
    pass


class QueueFullError(ApiError):
    """Request queue reached its maximum size"""
    pass


class RequestCancelledError(ApiError):
    """Queued request was cancelled before it completed"""
    pass


class CoachingError(IgniteError):
    """AI coaching evaluation failed"""
    pass
