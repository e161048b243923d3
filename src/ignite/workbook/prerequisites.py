"""
Prerequisite checks before generating content from workbook documents.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..errors.formatter import Toast

# Requirement name -> label shown to the user
PREREQUISITE_LABELS = {
    "messaging_strategy": "Messaging Strategy",
    "offer_outline": "Offer Outline",
    "offer_responses": "Offer Creation Responses",
}


@dataclass
class PrerequisiteResult:
    is_valid: bool
    missing_items: List[str] = field(default_factory=list)


def _is_empty(value: Any) -> bool:
    if not value:
        return True
    if isinstance(value, Mapping):
        return len(value) == 0
    return False


def validate_prerequisites(
    requirements: Mapping[str, bool],
    data: Mapping[str, Any]
) -> PrerequisiteResult:
    """
    Check that every required document exists and is non-empty.

    Args:
        requirements: e.g. {"messaging_strategy": True, "offer_outline": True}
        data: The documents, keyed like requirements

    Returns:
        PrerequisiteResult listing the labels of missing documents
    """
    missing = [
        label for name, label in PREREQUISITE_LABELS.items()
        if requirements.get(name) and _is_empty(data.get(name))
    ]
    return PrerequisiteResult(is_valid=not missing, missing_items=missing)


def prerequisite_message(missing_items: List[str]) -> str:
    if len(missing_items) == 1:
        return f"Please complete your {missing_items[0]} first to generate this content."
    return f"Please complete the following first: {', '.join(missing_items)}."


def prerequisite_toast(missing_items: List[str], custom_message: Optional[str] = None) -> Toast:
    return Toast(
        title="Missing Required Information",
        description=custom_message or prerequisite_message(missing_items),
        variant="destructive",
    )
