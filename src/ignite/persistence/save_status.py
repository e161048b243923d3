"""
Save status tracking for workbook fields.

Each saved item (question, strategy, draft) has its own status; a global
status summarises them for the save indicator.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"
    CONFLICT = "conflict"
    OFFLINE = "offline"


@dataclass
class SaveOperation:
    """Latest status of one saved item"""
    key: str
    status: SaveStatus
    message: str
    timestamp: float
    error: Optional[Exception] = None

    @property
    def id(self) -> str:
        return f"{self.key}_{int(self.timestamp * 1000)}"


@dataclass
class SaveState:
    """Summary status across all items"""
    status: SaveStatus = SaveStatus.IDLE
    message: str = ""
    last_saved: Optional[float] = None
    error: Optional[Exception] = None


def summarize(operations: List[SaveOperation]) -> SaveState:
    """Derive the global save state from individual operations"""
    errors = sum(1 for op in operations if op.status == SaveStatus.ERROR)
    saving = sum(1 for op in operations if op.status == SaveStatus.SAVING)
    unsaved = any(op.status not in (SaveStatus.SAVED, SaveStatus.IDLE) for op in operations)

    if errors:
        return SaveState(SaveStatus.ERROR, f"{errors} save error{'s' if errors > 1 else ''}")
    if saving:
        return SaveState(SaveStatus.SAVING, f"Saving {saving} item{'s' if saving > 1 else ''}...")
    if unsaved:
        return SaveState(SaveStatus.CONFLICT, "Some items need saving")
    return SaveState(SaveStatus.SAVED, "All changes saved")


class SaveStatusTracker:
    """
    Tracks per-item save status.

    Items marked saved are dropped automatically once auto_clear_after
    seconds have passed.
    """

    def __init__(self, auto_clear_after: float = 3.0, clock: Callable[[], float] = time.time):
        self.auto_clear_after = auto_clear_after
        self._clock = clock
        self._operations: Dict[str, SaveOperation] = {}
        self._retry_functions: Dict[str, Callable[[], Awaitable[None]]] = {}
        self.global_state = SaveState()

    def _expire_saved(self):
        now = self._clock()
        expired = [
            key for key, op in self._operations.items()
            if op.status == SaveStatus.SAVED and now - op.timestamp >= self.auto_clear_after
        ]
        for key in expired:
            del self._operations[key]

    @property
    def operations(self) -> Dict[str, SaveOperation]:
        self._expire_saved()
        return dict(self._operations)

    def set_status(
        self,
        key: str,
        status: SaveStatus,
        message: str = "",
        error: Optional[Exception] = None
    ) -> SaveOperation:
        """Record the status of an item and refresh the global state"""
        self._expire_saved()

        operation = SaveOperation(
            key=key,
            status=SaveStatus(status),
            message=message,
            timestamp=self._clock(),
            error=error,
        )
        self._operations[key] = operation

        state = summarize(list(self._operations.values()))
        state.last_saved = operation.timestamp
        self.global_state = state

        return operation

    def mark_saving(self, key: str, message: str = "Saving...") -> SaveOperation:
        return self.set_status(key, SaveStatus.SAVING, message)

    def mark_saved(self, key: str) -> SaveOperation:
        return self.set_status(key, SaveStatus.SAVED, "Saved successfully")

    def mark_error(self, key: str, error: Exception, retry_count: int = 0) -> SaveOperation:
        if retry_count > 0:
            message = f"Save failed (attempt {retry_count + 1}): {error}"
        else:
            message = f"Save failed: {error}"
        logger.warning(f"{key}: {message}")
        return self.set_status(key, SaveStatus.ERROR, message, error)

    def clear(self, key: str):
        self._operations.pop(key, None)

    def clear_all(self):
        self._operations.clear()
        self.global_state = SaveState()

    def get(self, key: str) -> Optional[SaveOperation]:
        self._expire_saved()
        return self._operations.get(key)

    def has_unsaved_changes(self) -> bool:
        """Whether any item is still saving or failed to save"""
        return any(
            op.status in (SaveStatus.ERROR, SaveStatus.SAVING)
            for op in self.operations.values()
        )

    def failed_saves(self) -> List[SaveOperation]:
        return [op for op in self.operations.values() if op.status == SaveStatus.ERROR]

    async def manual_save(self, key: str, save_function: Callable[[], Awaitable[None]]):
        """
        Save an item explicitly, remembering the function for retries.

        Raises:
            Whatever save_function raises, after marking the item failed
        """
        self.mark_saving(key, "Manual save...")
        self._retry_functions[key] = save_function
        try:
            await save_function()
        except Exception as e:
            self.mark_error(key, e)
            raise
        self.mark_saved(key)

    async def retry_failed_save(self, key: str) -> bool:
        """
        Retry the last manual save of an item.

        Returns:
            True if the retry succeeded; False if it failed or nothing to retry
        """
        retry_function = self._retry_functions.get(key)
        if retry_function is None:
            return False

        self.mark_saving(key, "Retrying...")
        try:
            await retry_function()
        except Exception as e:
            self.mark_error(key, e)
            return False
        self.mark_saved(key)
        return True

    async def manual_save_all(self, save_all_function: Callable[[], Awaitable[None]]):
        """Save everything at once, reflecting progress in the global state"""
        self.global_state = SaveState(SaveStatus.SAVING, "Saving all changes...")
        try:
            await save_all_function()
        except Exception as e:
            self.global_state = SaveState(
                SaveStatus.ERROR,
                f"Failed to save all changes: {e}",
                error=e,
            )
            raise
        self.global_state = SaveState(
            SaveStatus.SAVED,
            "All changes saved",
            last_saved=self._clock(),
        )
