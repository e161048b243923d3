"""
AI coaching: prompts, evaluation service and monitoring.
"""

from .monitoring import CoachingEvent, CoachingMonitor
from .prompts import CoachingPromptBuilder, PromptComponent
from .service import (
    CoachingService,
    FeedbackResult,
    InteractiveCoachingResult,
    RealTimeFeedback,
    SalesCoachingResult,
    extract_json_object,
    MIN_RESPONSE_CHARS,
    LEVEL_DESCRIPTIONS,
)

__all__ = [
    "CoachingEvent",
    "CoachingMonitor",
    "CoachingPromptBuilder",
    "PromptComponent",
    "CoachingService",
    "FeedbackResult",
    "InteractiveCoachingResult",
    "RealTimeFeedback",
    "SalesCoachingResult",
    "extract_json_object",
    "MIN_RESPONSE_CHARS",
    "LEVEL_DESCRIPTIONS",
]
