"""
Client-side persistence: local storage, debouncing, save status and migrations.
"""

from .local_store import LocalStore
from .debounce import DebounceStats, MasterDebouncer, operation_key
from .save_status import SaveOperation, SaveState, SaveStatus, SaveStatusTracker
from .unsaved_changes import UnsavedChangesTracker
from .migration import (
    MigrationResult,
    SectionCompletionMigration,
    WorkbookMigration,
    parse_section_title,
)

__all__ = [
    "LocalStore",
    "DebounceStats",
    "MasterDebouncer",
    "operation_key",
    "SaveOperation",
    "SaveState",
    "SaveStatus",
    "SaveStatusTracker",
    "UnsavedChangesTracker",
    "MigrationResult",
    "SectionCompletionMigration",
    "WorkbookMigration",
    "parse_section_title",
]
