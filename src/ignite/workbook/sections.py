"""
Workbook section rules: section titles, response maps and completion.
"""

import json
import logging
from typing import Dict, Iterable, List, Mapping, Union

from ..api.models import WorkbookResponse

logger = logging.getLogger(__name__)

# Question key prefix -> section title, per step
STEP_SECTION_TITLES: Dict[int, Dict[str, str]] = {
    3: {
        "customer-experience": "Customer Experience Design",
        "sales-page": "Sales Page Content",
        "project-plan": "Project Planning",
    },
    4: {
        "sales-strategy": "Sales Strategy",
        "customer-locations": "Customer Locations",
        "daily-planning": "Daily Planning",
        "connection-strategy": "Connection Strategy",
        "sales-conversations": "Sales Conversations",
    },
}

DEFAULT_SECTION_TITLES = {
    3: "Customer Experience Design",
    4: "Sales Strategy",
}

# Number of answers that counts as a complete step
COMPLETION_THRESHOLDS = {
    1: 15,  # Your Messaging
    2: 8,   # Create Your Offer
    3: 12,  # Build Your Offer
}
DEFAULT_COMPLETION_THRESHOLD = 10

# Legacy records holding a whole step-1 answer map as JSON
LEGACY_BLOB_MARKER = "step-1-responses-"

MINIMUM_ANSWER_CHARS = 25


def section_title_for(step_number: int, question_key: str) -> str:
    """
    Section title a question is filed under.

    Steps 3 and 4 map known key prefixes to fixed titles (falling back to
    the step's default); other steps use the first dash-separated part.
    """
    mapping = STEP_SECTION_TITLES.get(step_number)
    if mapping is not None:
        for prefix, title in mapping.items():
            if question_key == prefix or question_key.startswith(prefix + "-"):
                return title
        return DEFAULT_SECTION_TITLES[step_number]

    return question_key.split("-")[0] or "General"


def responses_to_map(responses: Iterable[WorkbookResponse]) -> Dict[str, str]:
    """
    Flatten response records into {question_key: text}.

    Legacy step-1 blobs are expanded into their individual answers.
    """
    result: Dict[str, str] = {}

    for response in responses:
        if LEGACY_BLOB_MARKER in response.question_key:
            try:
                parsed = json.loads(response.response_text)
            except json.JSONDecodeError as e:
                logger.error(f"Error parsing legacy responses {response.question_key}: {e}")
                continue
            if isinstance(parsed, dict):
                result.update({str(k): str(v) for k, v in parsed.items()})
        else:
            result[response.question_key] = response.response_text

    return result


def completion_percentage(step_number: int, responses: Iterable[WorkbookResponse]) -> float:
    """Share of the step's expected answers that are filled in, capped at 100"""
    answered = sum(1 for r in responses if r.response_text.strip())
    threshold = COMPLETION_THRESHOLDS.get(step_number, DEFAULT_COMPLETION_THRESHOLD)
    return min(100.0, answered / threshold * 100)


def responses_by_section(
    responses: Iterable[WorkbookResponse],
    section_title: str
) -> List[WorkbookResponse]:
    return [r for r in responses if r.section_title == section_title]


def count_answered(
    section_title: str,
    prompts: Iterable[Union[str, Mapping[str, str]]],
    values: Mapping[str, str],
    minimum_chars: int = MINIMUM_ANSWER_CHARS
) -> int:
    """
    Count the prompts of a section answered with at least minimum_chars.

    Answers are keyed "{section_title}-{question}"; prompts may be plain
    question strings or dicts with a "question" entry.
    """
    count = 0
    for prompt in prompts:
        question = prompt.get("question", str(prompt)) if isinstance(prompt, Mapping) else prompt
        value = values.get(f"{section_title}-{question}") or ""
        if len(value.strip()) >= minimum_chars:
            count += 1
    return count
