"""
AI coaching service.

Evaluates workbook answers and sales page sections with an LLM provider and
turns the model's JSON replies into typed results. Every evaluation path has
a fallback so the workbook keeps working when the model is unavailable.
"""

import re
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors.exceptions import CoachingError
from ..llm.provider import ILLMProvider
from .monitoring import CoachingMonitor
from .prompts import CoachingPromptBuilder

logger = logging.getLogger(__name__)

# Answers shorter than this are rated without calling the model
MIN_RESPONSE_CHARS = 20

LEVEL_DESCRIPTIONS = {
    "excellent-depth": "Excellent depth - specific and grounded in real insight",
    "good-start": "Good start - add specifics and examples",
    "needs-more-detail": "Needs more detail - expand on your answer",
}

REAL_TIME_STATUSES = ("typing", "good-start", "developing", "strong")

SALES_LEVEL_DESCRIPTIONS = {
    "high-converting": "High-converting - ready to publish",
    "good-foundation": "Good foundation - can be made stronger",
    "needs-more-depth": "Needs more depth - add emotion and specifics",
}

SHORT_RESPONSE_FEEDBACK = (
    "Your answer is quite short. Add a few sentences with specific details, "
    "examples or your customers' own words so we can give you meaningful feedback."
)

FALLBACK_FEEDBACK = (
    "We couldn't generate AI feedback right now. Keep going: specific details, "
    "real examples and your customers' own words make the strongest answers."
)

FALLBACK_ENCOURAGEMENT = "You're on the right track! Keep developing your thoughts."


# ============================================================================
# Results
# ============================================================================

@dataclass
class FeedbackResult:
    """Depth rating for a workbook answer"""
    level: str
    level_description: str
    feedback: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "levelDescription": self.level_description,
            "feedback": self.feedback,
        }


@dataclass
class InteractiveCoachingResult:
    """Feedback plus follow-up prompts for expanding an answer"""
    feedback: str
    interactive_prompts: List[str] = field(default_factory=list)
    level: str = "good-start"
    level_description: str = LEVEL_DESCRIPTIONS["good-start"]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "feedback": self.feedback,
            "interactivePrompts": list(self.interactive_prompts),
            "level": self.level,
            "levelDescription": self.level_description,
        }


@dataclass
class RealTimeFeedback:
    """Live feedback shown while the user types"""
    status: str
    encouragement: str
    suggestions: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    rewording: Optional[str] = None
    reasoning: Optional[str] = None
    next_steps: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "encouragement": self.encouragement,
            "suggestions": list(self.suggestions),
            "examples": list(self.examples),
            "rewording": self.rewording,
            "reasoning": self.reasoning,
            "nextSteps": list(self.next_steps),
        }


@dataclass
class SalesCoachingResult:
    """Scored coaching for a sales page section"""
    level: str
    level_description: str
    feedback: str
    suggestions: List[str] = field(default_factory=list)
    emotional_depth_score: int = 1
    clarity_score: int = 1
    persuasion_score: int = 1
    improvements: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)

    @property
    def score(self) -> int:
        """Overall 1-5 score (rounded mean of the three dimensions)"""
        return round((self.emotional_depth_score + self.clarity_score + self.persuasion_score) / 3)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "levelDescription": self.level_description,
            "feedback": self.feedback,
            "suggestions": list(self.suggestions),
            "score": self.score,
            "emotionalDepthScore": self.emotional_depth_score,
            "clarityScore": self.clarity_score,
            "persuasionScore": self.persuasion_score,
            "improvements": list(self.improvements),
            "examples": list(self.examples),
        }


# ============================================================================
# Reply parsing
# ============================================================================

_FENCED_JSON = re.compile(r'```(?:json)?\s*\n?(\{.*?\})\s*\n?```', re.DOTALL)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Extract the first JSON object from a model reply.

    Looks for a fenced ```json block first, then for the first position where
    a bare object decodes.

    Returns:
        The decoded object, or None if the reply holds no JSON object
    """
    if not text:
        return None

    for match in _FENCED_JSON.finditer(text):
        try:
            parsed = json.loads(match.group(1).strip())
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse JSON from code block: {e}")
            continue
        if isinstance(parsed, dict):
            return parsed

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
        start = text.find("{", start + 1)

    return None


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item]
    return []


def _score(value: Any) -> int:
    """Clamp a model-provided score into 1..5"""
    try:
        return min(max(int(round(float(value))), 1), 5)
    except (TypeError, ValueError):
        return 1


def _level(value: Any, allowed: Dict[str, str], default: str) -> str:
    return value if isinstance(value, str) and value in allowed else default


# ============================================================================
# Service
# ============================================================================

class CoachingService:
    """
    Runs coaching evaluations against an LLM provider.

    Evaluations of workbook answers are recorded in the CoachingMonitor.
    """

    def __init__(
        self,
        provider: ILLMProvider,
        monitor: Optional[CoachingMonitor] = None,
        temperature: float = 0.4,
        max_tokens: int = 1024
    ):
        self.provider = provider
        self.monitor = monitor if monitor is not None else CoachingMonitor()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.prompts = CoachingPromptBuilder()

    async def _complete(self, task: str, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ask the model for a JSON reply.

        Raises:
            CoachingError: If the provider fails or the reply holds no JSON object
        """
        system_prompt, user_prompt = self.prompts.build_for_task(task, context)

        try:
            response = await self.provider.create_message(
                system_prompt=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            raise CoachingError(f"{task} request failed: {e}") from e

        parsed = extract_json_object(response.text)
        if parsed is None:
            preview = response.text[:200] if response.text else ""
            raise CoachingError(f"{task} reply contained no JSON object: {preview!r}")

        return parsed

    # ========================================================================
    # Workbook answers
    # ========================================================================

    async def ai_feedback(
        self,
        section_title: str,
        question_text: str,
        response_text: str,
        step_number: Optional[int] = None,
        user_id: Optional[int] = None,
        user_email: Optional[str] = None
    ) -> FeedbackResult:
        """
        Rate the depth of a workbook answer.

        Args:
            section_title: Workbook section the question belongs to
            question_text: The question
            response_text: The user's answer
            step_number: Workbook step
            user_id: Answering user's id
            user_email: Answering user's email (monitoring only)

        Returns:
            FeedbackResult (fallback result when the model is unavailable)
        """
        text = (response_text or "").strip()
        succeeded = True

        if len(text) < MIN_RESPONSE_CHARS:
            result = FeedbackResult(
                level="needs-more-detail",
                level_description=LEVEL_DESCRIPTIONS["needs-more-detail"],
                feedback=SHORT_RESPONSE_FEEDBACK,
            )
        else:
            try:
                data = await self._complete("ai_feedback", {
                    "STEP_NUMBER": step_number if step_number is not None else "?",
                    "SECTION_TITLE": section_title,
                    "QUESTION_TEXT": question_text,
                    "RESPONSE_TEXT": text,
                })
                level = _level(data.get("level"), LEVEL_DESCRIPTIONS, "good-start")
                result = FeedbackResult(
                    level=level,
                    level_description=data.get("levelDescription") or LEVEL_DESCRIPTIONS[level],
                    feedback=data.get("feedback") or LEVEL_DESCRIPTIONS[level],
                )
            except CoachingError as e:
                logger.warning(f"AI feedback fell back for section '{section_title}': {e}")
                succeeded = False
                result = FeedbackResult(
                    level="good-start",
                    level_description=LEVEL_DESCRIPTIONS["good-start"],
                    feedback=FALLBACK_FEEDBACK,
                )

        self.monitor.record(
            section=section_title,
            question_context=question_text,
            user_response=text,
            level=result.level,
            level_description=result.level_description,
            feedback=result.feedback,
            user_id=user_id,
            user_email=user_email,
            succeeded=succeeded,
        )
        return result

    async def interactive_coaching(
        self,
        section: str,
        question_context: str,
        user_response: str,
        user_id: Optional[int] = None,
        user_email: Optional[str] = None
    ) -> InteractiveCoachingResult:
        """
        Give feedback and follow-up prompts for expanding an answer.

        Returns:
            InteractiveCoachingResult (fallback result when the model is unavailable)
        """
        text = (user_response or "").strip()
        succeeded = True

        try:
            data = await self._complete("interactive", {
                "SECTION": section,
                "QUESTION_CONTEXT": question_context,
                "USER_RESPONSE": text or "(no answer yet)",
            })
            level = _level(data.get("level"), LEVEL_DESCRIPTIONS, "good-start")
            result = InteractiveCoachingResult(
                feedback=data.get("feedback") or LEVEL_DESCRIPTIONS[level],
                interactive_prompts=_string_list(data.get("interactivePrompts"))[:3],
                level=level,
                level_description=data.get("levelDescription") or LEVEL_DESCRIPTIONS[level],
            )
        except CoachingError as e:
            logger.warning(f"Interactive coaching fell back for section '{section}': {e}")
            succeeded = False
            result = InteractiveCoachingResult(feedback=FALLBACK_FEEDBACK)

        self.monitor.record(
            section=section,
            question_context=question_context,
            user_response=text,
            level=result.level,
            level_description=result.level_description,
            feedback=result.feedback,
            user_id=user_id,
            user_email=user_email,
            succeeded=succeeded,
        )
        return result

    async def real_time_feedback(
        self,
        question: str,
        user_response: str,
        section_context: str = ""
    ) -> RealTimeFeedback:
        """
        Produce live feedback for a partially written answer.

        Returns:
            RealTimeFeedback; `typing` for very short input, `good-start`
            with generic encouragement when the model is unavailable
        """
        text = (user_response or "").strip()

        if len(text) < MIN_RESPONSE_CHARS:
            return RealTimeFeedback(status="typing", encouragement="Keep going - share a bit more.")

        try:
            data = await self._complete("real_time", {
                "QUESTION": question,
                "USER_RESPONSE": text,
                "SECTION_CONTEXT": section_context or "Workbook",
            })
        except CoachingError as e:
            logger.warning(f"Real-time feedback fell back: {e}")
            return RealTimeFeedback(status="good-start", encouragement=FALLBACK_ENCOURAGEMENT)

        status = data.get("status")
        if status not in REAL_TIME_STATUSES:
            status = "good-start"

        return RealTimeFeedback(
            status=status,
            encouragement=data.get("encouragement") or FALLBACK_ENCOURAGEMENT,
            suggestions=_string_list(data.get("suggestions")),
            examples=_string_list(data.get("examples")),
            rewording=data.get("rewording") or None,
            reasoning=data.get("reasoning") or None,
            next_steps=_string_list(data.get("nextSteps")),
        )

    # ========================================================================
    # Sales page
    # ========================================================================

    async def coach_sales_section(self, section_type: str, user_input: str) -> SalesCoachingResult:
        """
        Score and coach a sales page section.

        Returns:
            SalesCoachingResult (fallback result when the model is unavailable)
        """
        text = (user_input or "").strip()

        if len(text) < MIN_RESPONSE_CHARS:
            return SalesCoachingResult(
                level="needs-more-depth",
                level_description=SALES_LEVEL_DESCRIPTIONS["needs-more-depth"],
                feedback=SHORT_RESPONSE_FEEDBACK,
            )

        try:
            data = await self._complete("sales_coaching", {
                "SECTION_TYPE": section_type,
                "USER_INPUT": text,
            })
        except CoachingError as e:
            logger.warning(f"Sales coaching fell back for '{section_type}': {e}")
            return SalesCoachingResult(
                level="good-foundation",
                level_description=SALES_LEVEL_DESCRIPTIONS["good-foundation"],
                feedback=FALLBACK_FEEDBACK,
                emotional_depth_score=3,
                clarity_score=3,
                persuasion_score=3,
            )

        level = _level(data.get("level"), SALES_LEVEL_DESCRIPTIONS, "good-foundation")
        return SalesCoachingResult(
            level=level,
            level_description=data.get("levelDescription") or SALES_LEVEL_DESCRIPTIONS[level],
            feedback=data.get("feedback") or SALES_LEVEL_DESCRIPTIONS[level],
            suggestions=_string_list(data.get("suggestions")),
            emotional_depth_score=_score(data.get("emotionalDepthScore")),
            clarity_score=_score(data.get("clarityScore")),
            persuasion_score=_score(data.get("persuasionScore")),
            improvements=_string_list(data.get("improvements")),
            examples=_string_list(data.get("examples")),
        )

    async def improve_sales_section(self, section_type: str, current_content: str) -> List[str]:
        """
        Generate alternative versions of a sales page section.

        Raises:
            CoachingError: If the model is unavailable or returns no versions
        """
        data = await self._complete("sales_improvement", {
            "SECTION_TYPE": section_type,
            "CURRENT_CONTENT": (current_content or "").strip(),
        })

        improvements = _string_list(data.get("improvements"))
        if not improvements:
            raise CoachingError("Improvement reply contained no alternative versions")

        return improvements
