"""
Main entry point for the Ignite AI coaching service.

Serves the coaching endpoints the workbook calls and the admin coaching
monitoring endpoints. Callers are authenticated against the Ignite backend
with their own session cookies.
"""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import __version__
from .api import IgniteApiClient, IgniteApiConfig, User
from .coaching import CoachingMonitor, CoachingService
from .errors import (
    ApiError,
    ApiTimeoutError,
    CoachingError,
    ErrorFormatter,
    HttpStatusError,
    QueueFullError,
)
from .llm import create_llm_provider
from .workbook.access import AccessDecision, check_access

logger = logging.getLogger(__name__)

# Globals, created on first use
_api_config: Optional[IgniteApiConfig] = None
_monitor: Optional[CoachingMonitor] = None
_coaching_service: Optional[CoachingService] = None


def get_api_config() -> IgniteApiConfig:
    """Get or create the backend configuration."""
    global _api_config

    if _api_config is None:
        _api_config = IgniteApiConfig.from_env()

    return _api_config


def get_monitor() -> CoachingMonitor:
    """Get or create the coaching monitor."""
    global _monitor

    if _monitor is None:
        _monitor = CoachingMonitor()

    return _monitor


def get_coaching_service() -> CoachingService:
    """Get or create the coaching service (LLM provider from env)."""
    global _coaching_service

    if _coaching_service is None:
        provider = create_llm_provider(
            provider_type=os.getenv("LLM_PROVIDER", "anthropic"),
            model_id=os.getenv("LLM_MODEL_ID"),
            api_key=os.getenv("LLM_API_KEY")
        )
        _coaching_service = CoachingService(provider, monitor=get_monitor())

    return _coaching_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Ignite coaching service v{__version__} starting")
    yield
    if _coaching_service is not None:
        await _coaching_service.provider.close()
    logger.info("Ignite coaching service stopped")


app = FastAPI(title="Ignite - AI Coaching Service", version=__version__, lifespan=lifespan)


# ============================================================================
# Error handling
# ============================================================================

def _status_for(error: Exception) -> int:
    if isinstance(error, HttpStatusError):
        return error.status_code
    if isinstance(error, QueueFullError):
        return 503
    if isinstance(error, ApiTimeoutError):
        return 504
    return 502


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    logger.error(
        f"Backend error on {request.url.path}: {ErrorFormatter.format_error_concise(exc)}",
        extra={"path": request.url.path}
    )
    return JSONResponse(
        status_code=_status_for(exc),
        content=ErrorFormatter.format_error_response(exc)
    )


@app.exception_handler(CoachingError)
async def coaching_error_handler(request: Request, exc: CoachingError):
    logger.error(f"Coaching failed on {request.url.path}: {exc}", extra={"path": request.url.path})
    return JSONResponse(status_code=502, content=ErrorFormatter.format_error_response(exc))


# ============================================================================
# Authentication
# ============================================================================

async def get_authenticated_user(
    request: Request,
    config: IgniteApiConfig = Depends(get_api_config)
) -> User:
    """Resolve the caller through the backend's /api/auth/user."""
    async with IgniteApiClient(config, cookies=request.cookies) as client:
        user = await client.get_current_user()

    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return user


async def require_access(user: User = Depends(get_authenticated_user)) -> User:
    """Allow admins and users with an active subscription."""
    decision = check_access(user)

    if decision == AccessDecision.DEACTIVATED:
        raise HTTPException(status_code=403, detail="Account deactivated")
    if decision == AccessDecision.SUBSCRIPTION_REQUIRED:
        raise HTTPException(status_code=403, detail="Active subscription required")

    return user


async def require_admin(user: User = Depends(get_authenticated_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


# ============================================================================
# Request bodies
# ============================================================================

class _CamelBody(BaseModel):
    """Request bodies; the caller is always the authenticated user, so userId is ignored"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AiFeedbackRequest(_CamelBody):
    section_title: str = Field(alias="sectionTitle")
    question_text: str = Field(alias="questionText")
    response_text: str = Field(default="", alias="responseText")
    step_number: Optional[int] = Field(default=None, alias="stepNumber")


class InteractiveCoachingRequest(_CamelBody):
    section: str
    question_context: str = Field(alias="questionContext")
    user_response: str = Field(default="", alias="userResponse")


class RealTimeFeedbackRequest(_CamelBody):
    question: str
    user_response: str = Field(default="", alias="userResponse")
    section_context: str = Field(default="", alias="sectionContext")


class CoachSalesSectionRequest(_CamelBody):
    section_type: str = Field(alias="sectionType")
    user_input: str = Field(default="", alias="userInput")


class ImproveSalesSectionRequest(_CamelBody):
    section_type: str = Field(alias="sectionType")
    current_content: str = Field(min_length=1, alias="currentContent")


# ============================================================================
# Coaching endpoints
# ============================================================================

@app.post("/api/ai-feedback")
async def ai_feedback(
    body: AiFeedbackRequest,
    user: User = Depends(require_access),
    service: CoachingService = Depends(get_coaching_service)
):
    """Rate the depth of a workbook answer."""
    result = await service.ai_feedback(
        section_title=body.section_title,
        question_text=body.question_text,
        response_text=body.response_text,
        step_number=body.step_number,
        user_id=user.id,
        user_email=user.email
    )
    return {"success": True, "feedback": result.to_dict()}


@app.post("/api/interactive-coaching")
async def interactive_coaching(
    body: InteractiveCoachingRequest,
    user: User = Depends(require_access),
    service: CoachingService = Depends(get_coaching_service)
):
    """Feedback plus follow-up prompts for expanding an answer."""
    result = await service.interactive_coaching(
        section=body.section,
        question_context=body.question_context,
        user_response=body.user_response,
        user_id=user.id,
        user_email=user.email
    )
    return result.to_dict()


@app.post("/api/ai-coaching/real-time-feedback")
async def real_time_feedback(
    body: RealTimeFeedbackRequest,
    user: User = Depends(require_access),
    service: CoachingService = Depends(get_coaching_service)
):
    result = await service.real_time_feedback(
        question=body.question,
        user_response=body.user_response,
        section_context=body.section_context
    )
    return result.to_dict()


@app.post("/api/coach-sales-section")
async def coach_sales_section(
    body: CoachSalesSectionRequest,
    user: User = Depends(require_access),
    service: CoachingService = Depends(get_coaching_service)
):
    result = await service.coach_sales_section(body.section_type, body.user_input)
    return result.to_dict()


@app.post("/api/improve-sales-section")
async def improve_sales_section(
    body: ImproveSalesSectionRequest,
    user: User = Depends(require_access),
    service: CoachingService = Depends(get_coaching_service)
):
    improvements = await service.improve_sales_section(body.section_type, body.current_content)
    return {"improvements": improvements}


# ============================================================================
# Admin monitoring
# ============================================================================

@app.get("/api/coaching-monitoring/stats")
async def coaching_stats(
    admin: User = Depends(require_admin),
    monitor: CoachingMonitor = Depends(get_monitor)
):
    return monitor.get_stats()


@app.get("/api/coaching-monitoring/events")
async def coaching_events(
    limit: int = Query(default=20, ge=1, le=500),
    admin: User = Depends(require_admin),
    monitor: CoachingMonitor = Depends(get_monitor)
):
    return monitor.get_recent_events(limit)


@app.get("/api/coaching-monitoring/problematic")
async def coaching_problematic(
    limit: int = Query(default=10, ge=1, le=500),
    admin: User = Depends(require_admin),
    monitor: CoachingMonitor = Depends(get_monitor)
):
    return monitor.get_problematic_events(limit)


# ============================================================================
# Service info
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "ignite",
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint with service info"""
    return {
        "name": "Ignite",
        "description": "AI coaching service for the Launch/Ignite workbook",
        "version": f"v{__version__}",
        "llmProvider": os.getenv("LLM_PROVIDER", "anthropic"),
        "endpoints": [
            "POST /api/ai-feedback",
            "POST /api/interactive-coaching",
            "POST /api/ai-coaching/real-time-feedback",
            "POST /api/coach-sales-section",
            "POST /api/improve-sales-section",
            "GET /api/coaching-monitoring/stats",
            "GET /api/coaching-monitoring/events",
            "GET /api/coaching-monitoring/problematic"
        ]
    }


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.getenv("IGNITE_HOST", "127.0.0.1"),
        port=int(os.getenv("IGNITE_PORT", "8000"))
    )
