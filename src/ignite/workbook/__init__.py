"""
Workbook rules: sections, completion, prerequisites, action plans, mentions,
input schemas and the subscription gate.
"""

from .sections import (
    COMPLETION_THRESHOLDS,
    completion_percentage,
    count_answered,
    responses_by_section,
    responses_to_map,
    section_title_for,
)
from .prerequisites import (
    PrerequisiteResult,
    prerequisite_message,
    prerequisite_toast,
    validate_prerequisites,
)
from .action_plan import ActionItem, ActionPlan, generate_action_plan
from .mentions import MENTION_PATTERN, extract_mentions, split_mentions
from .access import AccessDecision, check_access, has_access

__all__ = [
    "COMPLETION_THRESHOLDS",
    "completion_percentage",
    "count_answered",
    "responses_by_section",
    "responses_to_map",
    "section_title_for",
    "PrerequisiteResult",
    "prerequisite_message",
    "prerequisite_toast",
    "validate_prerequisites",
    "ActionItem",
    "ActionPlan",
    "generate_action_plan",
    "MENTION_PATTERN",
    "extract_mentions",
    "split_mentions",
    "AccessDecision",
    "check_access",
    "has_access",
]
