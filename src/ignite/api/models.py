"""
Typed records returned by the Ignite backend.

The backend speaks camelCase JSON; each model maps it onto snake_case
fields with `from_dict`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class User:
    """Authenticated user as returned by /api/auth/user"""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    business_name: Optional[str] = None
    subscription_status: Optional[str] = None
    is_admin: bool = False
    is_active: bool = True
    has_completed_onboarding: bool = False
    last_visited_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data.get("email", ""),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            business_name=data.get("businessName"),
            subscription_status=data.get("subscriptionStatus"),
            is_admin=bool(data.get("isAdmin", False)),
            is_active=data.get("isActive", True) is not False,
            has_completed_onboarding=bool(data.get("hasCompletedOnboarding", False)),
            last_visited_path=data.get("lastVisitedPath"),
        )

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email


@dataclass
class WorkbookResponse:
    """One saved answer to a workbook question"""
    user_id: int
    step_number: int
    question_key: str
    response_text: str
    section_title: str = "General"
    offer_number: int = 1
    id: Optional[int] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkbookResponse":
        return cls(
            id=data.get("id"),
            user_id=data["userId"],
            step_number=data["stepNumber"],
            question_key=data["questionKey"],
            response_text=data.get("responseText") or "",
            section_title=data.get("sectionTitle") or "General",
            offer_number=data.get("offerNumber") or 1,
            updated_at=data.get("updatedAt"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "stepNumber": self.step_number,
            "sectionTitle": self.section_title,
            "questionKey": self.question_key,
            "responseText": self.response_text,
            "offerNumber": self.offer_number,
        }


@dataclass
class SectionCompletion:
    """Marker that a workbook section was completed"""
    user_id: int
    step_number: int
    section_title: str
    offer_number: int = 1
    id: Optional[int] = None
    completed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SectionCompletion":
        return cls(
            id=data.get("id"),
            user_id=data["userId"],
            step_number=data["stepNumber"],
            section_title=data["sectionTitle"],
            offer_number=data.get("offerNumber") or 1,
            completed_at=data.get("completedAt"),
        )


@dataclass
class ChecklistItem:
    """Implementation checklist checkbox"""
    user_id: int
    section_key: str
    item_key: str
    is_completed: bool = False
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChecklistItem":
        return cls(
            id=data.get("id"),
            user_id=data["userId"],
            section_key=data["sectionKey"],
            item_key=data["itemKey"],
            is_completed=bool(data.get("isCompleted", False)),
        )


@dataclass
class StrategyDocument:
    """
    Versioned generated document (messaging strategy or offer outline).

    Only one version per user is active at a time.
    """
    id: int
    user_id: int
    title: str
    content: str
    version: int = 1
    is_active: bool = False
    source_data: Dict[str, Any] = field(default_factory=dict)
    completion_percentage: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyDocument":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            title=data.get("title") or "",
            content=data.get("content") or "",
            version=data.get("version") or 1,
            is_active=bool(data.get("isActive", False)),
            source_data=data.get("sourceData") or {},
            completion_percentage=data.get("completionPercentage") or 0,
            created_at=data.get("createdAt"),
        )


@dataclass
class SalesPageDraft:
    id: int
    user_id: int
    title: str
    content: str
    is_active: bool = False
    status: str = "draft"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SalesPageDraft":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            title=data.get("title") or "",
            content=data.get("content") or "",
            is_active=bool(data.get("isActive", False)),
            status=data.get("status") or "draft",
        )


@dataclass
class IgniteDoc:
    """Document saved to the user's IGNITE Docs library"""
    id: int
    user_id: int
    doc_type: str
    title: str
    content_markdown: str
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IgniteDoc":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            doc_type=data.get("docType") or "",
            title=data.get("title") or "",
            content_markdown=data.get("contentMarkdown") or "",
            created_at=data.get("createdAt"),
        )


@dataclass
class ForumThread:
    id: int
    category_id: int
    title: str
    body: str
    user_id: Optional[int] = None
    post_count: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForumThread":
        return cls(
            id=data["id"],
            category_id=data.get("categoryId") or 0,
            title=data.get("title") or "",
            body=data.get("body") or "",
            user_id=data.get("userId"),
            post_count=data.get("postCount") or 0,
            created_at=data.get("createdAt"),
        )


@dataclass
class ForumPost:
    id: int
    thread_id: int
    body: str
    user_id: Optional[int] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForumPost":
        return cls(
            id=data["id"],
            thread_id=data.get("threadId") or 0,
            body=data.get("body") or "",
            user_id=data.get("userId"),
            created_at=data.get("createdAt"),
        )


@dataclass
class Notification:
    id: int
    type: str
    title: str
    message: str = ""
    is_read: bool = False
    link: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        return cls(
            id=data["id"],
            type=data.get("type") or "info",
            title=data.get("title") or "",
            message=data.get("message") or "",
            is_read=bool(data.get("isRead", False)),
            link=data.get("link"),
            created_at=data.get("createdAt"),
        )


def parse_list(model, data: Any) -> List[Any]:
    """Build a list of models from a JSON array (non-lists yield [])"""
    if not isinstance(data, list):
        return []
    return [model.from_dict(item) for item in data]
