"""
Migration of locally stored workbook data to the backend.

Early versions of the workbook kept answers and completed-section flags in
local storage only. These migrations read what is left there and replay it
against the API.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..api.client import IgniteApiClient
from ..errors.formatter import ErrorFormatter, Toast
from .local_store import LocalStore

logger = logging.getLogger(__name__)


def parse_section_title(key: str) -> str:
    """
    Section title encoded in a workbook_<step>_<section>-<n> key.

    Example:
        workbook_2_messaging-3 -> "Messaging"
    """
    parts = key.split("_")
    if len(parts) >= 3:
        section = parts[2].split("-")[0]
        return section[:1].upper() + section[1:]
    return "Unknown Section"


@dataclass
class MigrationResult:
    """Outcome of one migration run"""
    migrated: int = 0
    items: List[str] = field(default_factory=list)
    toast: Optional[Toast] = None


class WorkbookMigration:
    """
    Moves a user's locally stored workbook answers into the database.
    """

    def __init__(self, store: LocalStore, client: IgniteApiClient, user_id: int):
        self.store = store
        self.client = client
        self.user_id = user_id

    def collect(self, step_number: int) -> List[Dict[str, str]]:
        """
        Gather locally stored answers for a step.

        Steps 2 and 3 use workbook_<step>_* keys; step 4 keeps a sales
        strategy JSON object, a daily connection plan and AI location
        suggestions under user-specific keys.

        Returns:
            Dicts with questionKey, responseText and sectionTitle
        """
        responses: List[Dict[str, str]] = []

        if step_number in (2, 3):
            prefix = f"workbook_{step_number}_"
            for key in self.store.keys():
                if not key.startswith(prefix):
                    continue
                value = self.store.get_item(key) or ""
                if value.strip():
                    responses.append({
                        "questionKey": key[len(prefix):],
                        "responseText": value,
                        "sectionTitle": parse_section_title(key),
                    })

        elif step_number == 4:
            responses.extend(self._collect_sales_strategy())

        return responses

    def _collect_sales_strategy(self) -> List[Dict[str, str]]:
        responses: List[Dict[str, str]] = []

        strategy = self.store.get_json(f"sales-strategy-responses-{self.user_id}")
        if isinstance(strategy, dict):
            for key, value in strategy.items():
                if isinstance(value, str) and value.strip():
                    responses.append({
                        "questionKey": key,
                        "responseText": value,
                        "sectionTitle": "Sales Strategy",
                    })

        daily_plan = self.store.get_item(f"daily-connection-plan-{self.user_id}")
        if daily_plan and daily_plan.strip():
            responses.append({
                "questionKey": "daily-connection-plan",
                "responseText": daily_plan,
                "sectionTitle": "Daily Planning",
            })

        locations = self.store.get_json(f"ai-location-suggestions-{self.user_id}")
        if isinstance(locations, dict) and (locations.get("suggestions") or locations.get("addedIds")):
            responses.append({
                "questionKey": "ai-location-suggestions",
                "responseText": json.dumps(locations),
                "sectionTitle": "Customer Locations",
            })

        return responses

    def needs_migration(self, step_number: int) -> bool:
        return bool(self.collect(step_number))

    async def migrate(self, step_number: int) -> MigrationResult:
        """
        Upload a step's local answers.

        Local data is left in place; on failure the returned toast tells the
        user their work is still preserved locally.
        """
        responses = self.collect(step_number)
        if not responses:
            return MigrationResult()

        try:
            result = await self.client.migrate_workbook_responses(
                self.user_id, step_number, responses
            )
        except Exception as e:
            logger.error(f"Migration failed for step {step_number}: {e}")
            return MigrationResult(toast=Toast(
                title="Sync Failed",
                description="Could not transfer data to secure storage. Your work is preserved locally.",
                variant="destructive",
            ))

        migrated = int(result.get("migrated") or 0)
        logger.info(f"Migration successful: {migrated} responses transferred")

        toast = None
        if migrated > 0:
            toast = Toast(
                title="Data Synchronized",
                description=f"{migrated} responses transferred to secure storage.",
            )

        return MigrationResult(
            migrated=migrated,
            items=[r["questionKey"] for r in responses],
            toast=toast,
        )


class SectionCompletionMigration:
    """
    Replays local step-N-completed-sections flags as completion marks.
    """

    STEPS = (1, 2, 3, 4)

    def __init__(self, store: LocalStore, client: IgniteApiClient, user_id: int):
        self.store = store
        self.client = client
        self.user_id = user_id

    async def migrate(self) -> MigrationResult:
        """
        Mark every locally completed section complete in the database.

        A step's local flags are removed after the replay;
        flags that fail to migrate are logged and skipped.
        """
        migrated: List[str] = []

        for step in self.STEPS:
            storage_key = f"step-{step}-completed-sections-{self.user_id}"
            raw = self.store.get_item(storage_key)
            if raw is None:
                continue

            try:
                completions: Any = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to parse completion data for step {step}: {e}")
                continue

            if not isinstance(completions, dict):
                logger.error(f"Unexpected completion data for step {step}")
                continue

            for section_key, is_completed in completions.items():
                if not is_completed:
                    continue

                section_title = section_key.replace("-completed", "")
                try:
                    await self.client.mark_section_complete(self.user_id, step, section_title)
                    migrated.append(f"{step}-{section_title}")
                except Exception as e:
                    logger.error(
                        f"Failed to migrate completion for {section_title}: "
                        f"{ErrorFormatter.format_error_concise(e)}"
                    )

            self.store.remove_item(storage_key)

        return MigrationResult(migrated=len(migrated), items=migrated)
