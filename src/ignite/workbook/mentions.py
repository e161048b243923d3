"""
@mention parsing for forum posts.
"""

import re
from typing import List, Tuple

# Same pattern the backend uses to resolve mentions
MENTION_PATTERN = re.compile(r"@([a-zA-Z0-9._'-]{2,30})")


def extract_mentions(text: str) -> List[str]:
    """Mentioned handles in order of appearance, without duplicates"""
    seen = []
    for handle in MENTION_PATTERN.findall(text):
        if handle not in seen:
            seen.append(handle)
    return seen


def split_mentions(text: str) -> List[Tuple[str, bool]]:
    """
    Split text into (chunk, is_mention) parts for highlighting.

    Mention chunks keep their leading "@". Text without mentions comes back
    as a single plain chunk.
    """
    parts: List[Tuple[str, bool]] = []
    last_index = 0

    for match in MENTION_PATTERN.finditer(text):
        if match.start() > last_index:
            parts.append((text[last_index:match.start()], False))
        parts.append((f"@{match.group(1)}", True))
        last_index = match.end()

    if last_index < len(text):
        parts.append((text[last_index:], False))

    return parts or [(text, False)]
