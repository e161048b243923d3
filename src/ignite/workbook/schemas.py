"""
Validation schemas for user input (auth forms, forum, interviews, progress).
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _CamelModel(BaseModel):
    """Accepts both snake_case names and the backend's camelCase aliases"""
    model_config = ConfigDict(populate_by_name=True)


# ===== Authentication =====

class SignupUser(_CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1, alias="firstName")
    last_name: str = Field(min_length=1, alias="lastName")


class LoginUser(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    password: str = Field(min_length=6)


class ChangePasswordRequest(_CamelModel):
    current_password: str = Field(min_length=1, alias="currentPassword")
    new_password: str = Field(min_length=6, alias="newPassword")


# ===== Forum =====

class ForumThreadCreate(BaseModel):
    title: str = Field(min_length=4, max_length=140)
    body: str = Field(min_length=10, max_length=20000)


class ForumPostCreate(BaseModel):
    body: str = Field(min_length=10, max_length=20000)


# ===== Interview transcripts =====

class TranscriptStatus(str, Enum):
    DRAFT = "draft"
    PROCESSING = "processing"
    PROCESSED = "processed"
    UPDATED = "updated"


class InterviewTranscriptCreate(_CamelModel):
    user_id: int = Field(alias="userId")
    title: str = Field(min_length=1)
    raw_transcript: str = Field(min_length=1, alias="rawTranscript")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    interview_date: Optional[str] = Field(default=None, alias="interviewDate")
    platform: Optional[str] = None
    duration: Optional[str] = None
    extracted_insights: Optional[Any] = Field(default=None, alias="extractedInsights")
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    status: TranscriptStatus = TranscriptStatus.DRAFT


# ===== Progress =====

class UserProgressCreate(_CamelModel):
    user_id: int = Field(alias="userId")
    step_number: int = Field(alias="stepNumber")
    completed_prompts: Optional[Any] = Field(default=None, alias="completedPrompts")
    brand_voice: Optional[str] = Field(default=None, alias="brandVoice")
    customer_avatar: Optional[Any] = Field(default=None, alias="customerAvatar")
    is_completed: bool = Field(default=False, alias="isCompleted")
    completed_at: Optional[str] = Field(default=None, alias="completedAt")
