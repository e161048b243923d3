"""
Client-side key/value storage.

A string-to-string store with the semantics of browser local storage,
optionally persisted as a JSON file. Workbook answers, unsaved-change
backups and completion flags live here until they reach the backend.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class LocalStore:
    """
    Key/value store persisted to a JSON file (or kept in memory).

    Every write is flushed to disk immediately when a path is configured.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        """
        Initialize store.

        Args:
            path: JSON file backing the store (None for memory only)
        """
        self.path = Path(path) if path else None
        self._data: Dict[str, str] = {}
        self._load()

    def _load(self):
        """Load stored items from disk."""
        if self.path is None or not self.path.exists():
            return

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read local store {self.path}: {e}")
            return

        if isinstance(raw, dict):
            self._data = {str(k): str(v) for k, v in raw.items()}

    def _flush(self):
        """Write stored items to disk."""
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str):
        self._data[key] = str(value)
        self._flush()

    def remove_item(self, key: str):
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def clear(self):
        self._data.clear()
        self._flush()

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Get a JSON-encoded item.

        Returns:
            Decoded value, or default when missing or not valid JSON
        """
        raw = self._data.get(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring malformed JSON stored under {key}")
            return default

    def set_json(self, key: str, value: Any):
        self.set_item(key, json.dumps(value))

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
