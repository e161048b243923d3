"""
Unsaved change tracking, backed up to the local store.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .local_store import LocalStore

logger = logging.getLogger(__name__)


class UnsavedChangesTracker:
    """
    Tracks edited-but-unsaved answers for one workbook step.

    The tracked set is mirrored to the local store under
    unsaved-changes-{user}-{step}-{offer} so edits survive a restart.
    """

    def __init__(self, store: LocalStore, user_id: int, step_number: int, offer_number: int = 1):
        self.store = store
        self.backup_key = f"unsaved-changes-{user_id}-{step_number}-{offer_number}"

        loaded = store.get_json(self.backup_key, {})
        if not isinstance(loaded, dict):
            loaded = {}
        # Entries that are not change records are dropped
        self._changes: Dict[str, Dict] = {
            key: entry for key, entry in loaded.items() if isinstance(entry, dict)
        }

    def _persist(self):
        if self._changes:
            self.store.set_json(self.backup_key, self._changes)
        else:
            self.store.remove_item(self.backup_key)

    def track_change(self, question_key: str, current_value: str, original_value: str):
        """Record an edit; an edit back to the original value drops the entry"""
        if current_value == original_value:
            self._changes.pop(question_key, None)
        else:
            self._changes[question_key] = {
                "originalValue": original_value,
                "currentValue": current_value,
                "isDirty": True,
                "lastModified": datetime.now(timezone.utc).isoformat(),
            }
        self._persist()

    def clear_change(self, question_key: str):
        """Forget an entry (after it was saved)"""
        if self._changes.pop(question_key, None) is not None:
            self._persist()

    def clear_all(self):
        self._changes = {}
        self._persist()

    def is_dirty(self, question_key: str) -> bool:
        return bool(self._changes.get(question_key, {}).get("isDirty", False))

    def current_value(self, question_key: str) -> Optional[str]:
        return self._changes.get(question_key, {}).get("currentValue")

    @property
    def unsaved_count(self) -> int:
        return len(self._changes)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._changes)

    @property
    def dirty_questions(self) -> List[str]:
        return list(self._changes.keys())
