"""
Ignite backend API access: request queue, client and models.
"""

from .client import IgniteApiClient, IgniteApiConfig
from .queue import QueuedRequest, QueueStatus, RequestQueue, generate_request_id
from .models import (
    User,
    WorkbookResponse,
    SectionCompletion,
    ChecklistItem,
    StrategyDocument,
    SalesPageDraft,
    IgniteDoc,
    ForumThread,
    ForumPost,
    Notification,
)
from ..errors.exceptions import (
    ApiError,
    HttpStatusError,
    ApiConnectionError,
    ApiTimeoutError,
    QueueFullError,
    RequestCancelledError,
)

__all__ = [
    "IgniteApiClient",
    "IgniteApiConfig",
    "QueuedRequest",
    "QueueStatus",
    "RequestQueue",
    "generate_request_id",
    "User",
    "WorkbookResponse",
    "SectionCompletion",
    "ChecklistItem",
    "StrategyDocument",
    "SalesPageDraft",
    "IgniteDoc",
    "ForumThread",
    "ForumPost",
    "Notification",
    "ApiError",
    "HttpStatusError",
    "ApiConnectionError",
    "ApiTimeoutError",
    "QueueFullError",
    "RequestCancelledError",
]
