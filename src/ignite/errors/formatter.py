"""
Error message formatting for toasts, API error bodies and logs.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .categories import ErrorCategory, categorize_error
from .exceptions import HttpStatusError

logger = logging.getLogger(__name__)


@dataclass
class Toast:
    """Notification shown to the user after an operation"""
    title: str
    description: str
    variant: str = "default"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class ErrorFormatter:
    """
    Formats errors into user-facing messages.
    """

    # Toast title per failed action
    ACTION_TITLES = {
        "save": "Save Failed",
        "delete": "Delete Failed",
        "update": "Update Failed",
        "activate": "Activation Failed",
        "load": "Couldn't Load Data",
        "migrate": "Sync Failed",
        "coaching": "Coaching Unavailable",
    }

    # Follow-up hint per category
    HINTS = {
        ErrorCategory.AUTH: "Please log in again and retry.",
        ErrorCategory.SUBSCRIPTION: "Visit the subscription page to reactivate your access.",
        ErrorCategory.NETWORK: "Your work is preserved locally. We'll retry when you're back online.",
        ErrorCategory.TIMEOUT: "Please try again in a moment.",
        ErrorCategory.RATE_LIMIT: "Please wait a few seconds before trying again.",
        ErrorCategory.SERVER: "Please try again. If this keeps happening, report an issue.",
        ErrorCategory.QUEUE: "Please try again in a moment.",
        ErrorCategory.COACHING: "Try again later.",
    }

    EMOJIS = {
        ErrorCategory.AUTH: "🔒",
        ErrorCategory.SUBSCRIPTION: "💳",
        ErrorCategory.VALIDATION: "✏️",
        ErrorCategory.NOT_FOUND: "🔍",
        ErrorCategory.RATE_LIMIT: "🚦",
        ErrorCategory.SERVER: "🔌",
        ErrorCategory.NETWORK: "🌐",
        ErrorCategory.TIMEOUT: "⏱️",
        ErrorCategory.QUEUE: "📥",
        ErrorCategory.CANCELLED: "✋",
        ErrorCategory.COACHING: "🤖",
        ErrorCategory.INTERNAL: "⚠️",
    }

    @staticmethod
    def format_toast(error: Exception, action: str = "save") -> Toast:
        """
        Format an error as a destructive toast.

        Args:
            error: The exception to format
            action: What the user was doing (save, delete, load, ...)

        Returns:
            Toast with title and description
        """
        category, explanation = categorize_error(error)
        title = ErrorFormatter.ACTION_TITLES.get(action, "Something Went Wrong")
        hint = ErrorFormatter.HINTS.get(category, "Please try again.")

        return Toast(
            title=title,
            description=f"{explanation}. {hint}",
            variant="destructive",
        )

    @staticmethod
    def format_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
        """
        Format an error as a JSON-serializable API error body.

        Args:
            error: The exception to format
            include_details: Whether to include the raw error type and message
        """
        category, explanation = categorize_error(error)
        body: Dict[str, Any] = {
            "success": False,
            "message": explanation,
            "category": category.value,
        }

        if isinstance(error, HttpStatusError):
            body["status"] = error.status_code

        if include_details:
            body["details"] = {
                "type": type(error).__name__,
                "error": str(error)[:500],
            }

        return body

    @staticmethod
    def format_error_concise(error: Exception) -> str:
        """
        Format an error concisely for logs or inline display.
        """
        category, explanation = categorize_error(error)
        emoji = ErrorFormatter.EMOJIS.get(category, "❌")

        return f"{emoji} {category.value.upper()}: {explanation} - {str(error)[:100]}"


def format_error_for_user(
    error: Exception,
    action: Optional[str] = None,
    format_type: str = "toast"
) -> str:
    """
    Convenience function to format an error for display to users.

    Args:
        error: The exception to format
        action: Failed action, used for toast titles
        format_type: Format type ("toast" or "concise")

    Returns:
        Formatted error message
    """
    if format_type == "toast":
        toast = ErrorFormatter.format_toast(error, action or "save")
        return f"{toast.title}: {toast.description}"
    return ErrorFormatter.format_error_concise(error)
