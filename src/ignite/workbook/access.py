"""
Subscription gate for paid workbook features.
"""

from enum import Enum
from typing import Optional

from ..api.models import User


class AccessDecision(str, Enum):
    GRANTED = "granted"
    UNAUTHENTICATED = "unauthenticated"
    DEACTIVATED = "deactivated"
    SUBSCRIPTION_REQUIRED = "subscription_required"


def check_access(user: Optional[User]) -> AccessDecision:
    """
    Decide whether a user may use gated features.

    Deactivated accounts are always refused; otherwise admins and users with
    an active subscription are let in.
    """
    if user is None:
        return AccessDecision.UNAUTHENTICATED
    if not user.is_active:
        return AccessDecision.DEACTIVATED
    if user.is_admin or user.subscription_status == "active":
        return AccessDecision.GRANTED
    return AccessDecision.SUBSCRIPTION_REQUIRED


def has_access(user: Optional[User]) -> bool:
    return check_access(user) == AccessDecision.GRANTED
