"""
Coaching Monitor - Track AI feedback evaluations for the admin dashboard.

Keeps a bounded in-memory log of evaluations and answers:
- How many evaluations ran, and for how many users?
- How are answers distributed across feedback levels?
- Which evaluations need attention (low depth or failed)?
"""

import os
import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

FEEDBACK_LEVELS = ("excellent-depth", "good-start", "needs-more-detail")
PROBLEMATIC_LEVEL = "needs-more-detail"


@dataclass
class CoachingEvent:
    """One AI feedback evaluation"""
    id: int
    user_id: Optional[int]
    user_email: Optional[str]
    section: str
    question_context: str
    user_response: str
    ai_level: str
    ai_level_description: str
    ai_feedback: str
    succeeded: bool = True
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def response_length(self) -> int:
        return len(self.user_response)

    @property
    def is_problematic(self) -> bool:
        return not self.succeeded or self.ai_level == PROBLEMATIC_LEVEL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "userEmail": self.user_email,
            "timestamp": self.timestamp,
            "section": self.section,
            "questionContext": self.question_context,
            "userResponse": self.user_response,
            "aiLevel": self.ai_level,
            "aiLevelDescription": self.ai_level_description,
            "aiFeedback": self.ai_feedback,
            "responseLength": self.response_length,
            "succeeded": self.succeeded,
        }


class CoachingMonitor:
    """
    Bounded event log of coaching evaluations.

    The oldest events are dropped once `max_events` is reached. Recording is
    guarded by a lock so the monitor can be shared across request handlers.
    """

    def __init__(self, max_events: Optional[int] = None):
        if max_events is None:
            max_events = int(os.getenv("COACHING_MONITOR_MAX_EVENTS", "1000"))
        self.max_events = max_events
        self._events: Deque[CoachingEvent] = deque(maxlen=max_events)
        self._next_id = 1
        self._lock = threading.Lock()

    def record(
        self,
        section: str,
        question_context: str,
        user_response: str,
        level: str,
        level_description: str,
        feedback: str,
        user_id: Optional[int] = None,
        user_email: Optional[str] = None,
        succeeded: bool = True
    ) -> CoachingEvent:
        """
        Record an evaluation.

        Args:
            section: Workbook section title
            question_context: Question the user answered
            user_response: The evaluated answer
            level: Feedback level assigned
            level_description: Human-readable level description
            feedback: Feedback text returned to the user
            user_id: Evaluated user's id
            user_email: Evaluated user's email
            succeeded: False when the model call failed and a fallback was used

        Returns:
            The recorded event
        """
        with self._lock:
            event = CoachingEvent(
                id=self._next_id,
                user_id=user_id,
                user_email=user_email,
                section=section,
                question_context=question_context,
                user_response=user_response,
                ai_level=level,
                ai_level_description=level_description,
                ai_feedback=feedback,
                succeeded=succeeded,
            )
            self._next_id += 1
            self._events.append(event)

        logger.debug(
            f"Recorded coaching event {event.id}: {level} for section '{section}'",
            extra={"user_id": user_id, "section": section}
        )
        return event

    def get_stats(self) -> Dict[str, Any]:
        """
        Get aggregate statistics over the retained events.

        Returns:
            Dict with total, uniqueUsers, byLevel, bySection,
            averageResponseLength and successRate (percent)
        """
        with self._lock:
            events = list(self._events)

        total = len(events)
        by_level = {level: 0 for level in FEEDBACK_LEVELS}
        by_level.update(Counter(e.ai_level for e in events))

        return {
            "total": total,
            "uniqueUsers": len({e.user_id for e in events if e.user_id is not None}),
            "byLevel": by_level,
            "bySection": dict(Counter(e.section for e in events)),
            "averageResponseLength": (
                round(sum(e.response_length for e in events) / total) if total else 0
            ),
            "successRate": (
                round(sum(1 for e in events if e.succeeded) / total * 100) if total else 0
            ),
        }

    def get_recent_events(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get the most recent events, newest first"""
        with self._lock:
            events = list(self._events)
        return [e.to_dict() for e in reversed(events)][:max(limit, 0)]

    def get_problematic_events(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get low-depth or failed evaluations, newest first"""
        with self._lock:
            events = [e for e in self._events if e.is_problematic]
        return [e.to_dict() for e in reversed(events)][:max(limit, 0)]

    def __len__(self) -> int:
        return len(self._events)

    def reset(self) -> None:
        """Drop all events"""
        with self._lock:
            self._events.clear()
            self._next_id = 1
        logger.debug("Coaching monitor reset")
