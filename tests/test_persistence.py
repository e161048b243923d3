"""
Tests for client-side persistence

Covers the local store, the master debouncer, save status tracking,
unsaved change backups and the local-to-backend migrations.
"""

import asyncio

import pytest

from ignite.api import WorkbookResponse
from ignite.errors import RequestCancelledError
from ignite.persistence import (
    LocalStore,
    MasterDebouncer,
    SaveStatus,
    SaveStatusTracker,
    SectionCompletionMigration,
    UnsavedChangesTracker,
    WorkbookMigration,
    operation_key,
    parse_section_title,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


# ============================================================================
# Local store
# ============================================================================

class TestLocalStore:

    def test_items_persist_to_disk(self, tmp_path):
        path = tmp_path / "store.json"
        store = LocalStore(path)
        store.set_item("workbook_2_pain-1", "They feel invisible")
        store.set_json("flags", {"a": True})

        reopened = LocalStore(path)
        assert reopened.get_item("workbook_2_pain-1") == "They feel invisible"
        assert reopened.get_json("flags") == {"a": True}
        assert len(reopened) == 2

    def test_remove_and_clear(self, store):
        store.set_item("a", "1")
        store.set_item("b", "2")
        store.remove_item("a")
        assert "a" not in store
        store.clear()
        assert store.keys() == []

    def test_malformed_json_returns_default(self, store):
        store.set_item("broken", "{not json")
        assert store.get_json("broken", default=[]) == []

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("garbage", encoding="utf-8")
        assert len(LocalStore(path)) == 0

    def test_memory_only(self):
        store = LocalStore()
        store.set_item("k", "v")
        assert store.get_item("k") == "v"


# ============================================================================
# Debouncer
# ============================================================================

class TestMasterDebouncer:

    def test_operation_key(self):
        assert operation_key("workbook-save", 7, 2, "q1", "hello") == "workbook-save-7-2-q1-5"

    @pytest.mark.asyncio
    async def test_duplicates_share_one_execution(self):
        debouncer = MasterDebouncer(default_delay=0.01)
        calls = []

        async def operation():
            calls.append(1)
            return "saved"

        results = await asyncio.gather(
            debouncer.debounced_operation("k", operation),
            debouncer.debounced_operation("k", operation),
            debouncer.debounced_operation("k", operation),
        )

        assert results == ["saved", "saved", "saved"]
        assert len(calls) == 1
        stats = debouncer.get_stats()
        assert stats["total_requests"] == 3
        assert stats["deduplicated_requests"] == 2
        assert stats["pending_operations"] == 0

    @pytest.mark.asyncio
    async def test_distinct_keys_run_separately(self):
        debouncer = MasterDebouncer(default_delay=0.01)
        calls = []

        async def operation():
            calls.append(1)

        await asyncio.gather(
            debouncer.debounced_operation("a", operation),
            debouncer.debounced_operation("b", operation),
        )
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_failure_propagates_to_all_waiters(self):
        debouncer = MasterDebouncer(default_delay=0.01)

        async def operation():
            raise ValueError("save rejected")

        results = await asyncio.gather(
            debouncer.debounced_operation("k", operation),
            debouncer.debounced_operation("k", operation),
            return_exceptions=True,
        )

        assert all(isinstance(r, ValueError) for r in results)
        assert debouncer.get_stats()["pending_operations"] == 0

    @pytest.mark.asyncio
    async def test_key_is_released_after_completion(self):
        debouncer = MasterDebouncer(default_delay=0.0)
        calls = []

        async def operation():
            calls.append(1)

        await debouncer.debounced_operation("k", operation)
        await debouncer.debounced_operation("k", operation)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_workbook_save(self):
        debouncer = MasterDebouncer(default_delay=0.01)
        saved = []

        async def save(response):
            saved.append(response)
            return response

        response = WorkbookResponse(user_id=7, step_number=2, question_key="q1", response_text="Answer")
        first, second = await asyncio.gather(
            debouncer.debounced_workbook_save(response, save),
            debouncer.debounced_workbook_save(response, save),
        )

        assert first is response and second is response
        assert saved == [response]

    @pytest.mark.asyncio
    async def test_ai_feedback_uses_keyword_arguments(self, mocker):
        debouncer = MasterDebouncer()
        feedback = mocker.AsyncMock(return_value={"level": "good-start"})
        original = debouncer.debounced_operation
        delays = []

        async def without_delay(key, operation, delay=None):
            delays.append(delay)
            return await original(key, operation, delay=0.0)

        mocker.patch.object(debouncer, "debounced_operation", new=without_delay)

        result = await debouncer.debounced_ai_feedback(7, "Offer", "What is it?", "A program", feedback)

        assert result == {"level": "good-start"}
        assert delays == [1.0]
        feedback.assert_awaited_once_with(
            user_id=7,
            section_title="Offer",
            question_text="What is it?",
            response_text="A program",
        )

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        debouncer = MasterDebouncer(default_delay=10.0)

        async def operation():
            return "never"

        task = asyncio.ensure_future(debouncer.debounced_operation("k", operation))
        await asyncio.sleep(0)

        assert debouncer.cancel_all() == 1
        with pytest.raises(RequestCancelledError, match="Debounced operation cancelled"):
            await task
        assert debouncer.get_stats()["total_requests"] == 0
        assert debouncer.get_stats()["active_timeouts"] == 0

    def test_flood_warning_is_rate_limited(self):
        clock = FakeClock()
        debouncer = MasterDebouncer(flood_threshold=2, flood_warning_interval=10.0, clock=clock)
        debouncer.stats.total_requests = 3

        assert debouncer._check_for_flooding() is True
        assert debouncer._check_for_flooding() is False

        clock.now += 11
        assert debouncer._check_for_flooding() is True

    def test_no_flood_below_threshold(self):
        debouncer = MasterDebouncer(flood_threshold=20)
        debouncer.stats.total_requests = 20
        assert debouncer._check_for_flooding() is False


# ============================================================================
# Save status
# ============================================================================

class TestSaveStatusTracker:

    def test_global_state_summarises_items(self):
        tracker = SaveStatusTracker()

        tracker.mark_saving("q1")
        tracker.mark_saving("q2")
        assert tracker.global_state.status == SaveStatus.SAVING
        assert tracker.global_state.message == "Saving 2 items..."

        tracker.mark_error("q2", RuntimeError("500: boom"))
        assert tracker.global_state.status == SaveStatus.ERROR
        assert tracker.global_state.message == "1 save error"

        tracker.mark_saved("q1")
        tracker.mark_saved("q2")
        assert tracker.global_state.status == SaveStatus.SAVED
        assert tracker.global_state.message == "All changes saved"

    def test_offline_items_need_saving(self):
        tracker = SaveStatusTracker()
        tracker.set_status("q1", SaveStatus.OFFLINE, "Offline")
        assert tracker.global_state.message == "Some items need saving"

    def test_error_message_includes_attempt(self):
        tracker = SaveStatusTracker()
        op = tracker.mark_error("q1", RuntimeError("timeout"), retry_count=2)
        assert op.message == "Save failed (attempt 3): timeout"
        assert tracker.mark_error("q1", RuntimeError("x")).message == "Save failed: x"

    def test_saved_items_expire(self):
        clock = FakeClock()
        tracker = SaveStatusTracker(auto_clear_after=3.0, clock=clock)

        tracker.mark_saved("q1")
        assert tracker.get("q1") is not None

        clock.now += 3.0
        assert tracker.get("q1") is None

    def test_errors_do_not_expire(self):
        clock = FakeClock()
        tracker = SaveStatusTracker(auto_clear_after=3.0, clock=clock)

        tracker.mark_error("q1", RuntimeError("down"))
        clock.now += 60
        assert tracker.has_unsaved_changes() is True
        assert [op.key for op in tracker.failed_saves()] == ["q1"]

    @pytest.mark.asyncio
    async def test_manual_save_and_retry(self):
        tracker = SaveStatusTracker()
        attempts = []

        async def save():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("network down")

        with pytest.raises(RuntimeError):
            await tracker.manual_save("q1", save)
        assert tracker.get("q1").status == SaveStatus.ERROR

        assert await tracker.retry_failed_save("q1") is True
        assert tracker.get("q1").status == SaveStatus.SAVED
        assert await tracker.retry_failed_save("unknown") is False

    @pytest.mark.asyncio
    async def test_manual_save_all_failure(self):
        tracker = SaveStatusTracker()

        async def save_all():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await tracker.manual_save_all(save_all)
        assert tracker.global_state.status == SaveStatus.ERROR
        assert tracker.global_state.message == "Failed to save all changes: boom"


# ============================================================================
# Unsaved changes
# ============================================================================

class TestUnsavedChangesTracker:

    def test_track_and_restore(self, store):
        tracker = UnsavedChangesTracker(store, user_id=7, step_number=2)
        tracker.track_change("q1", "new text", "old text")

        assert tracker.is_dirty("q1")
        assert "unsaved-changes-7-2-1" in store

        restored = UnsavedChangesTracker(store, user_id=7, step_number=2)
        assert restored.current_value("q1") == "new text"
        assert restored.unsaved_count == 1

    def test_reverting_drops_entry(self, store):
        tracker = UnsavedChangesTracker(store, user_id=7, step_number=2)
        tracker.track_change("q1", "edited", "original")
        tracker.track_change("q1", "original", "original")

        assert tracker.has_unsaved_changes is False
        assert "unsaved-changes-7-2-1" not in store

    def test_clear_change(self, store):
        tracker = UnsavedChangesTracker(store, user_id=7, step_number=3, offer_number=2)
        tracker.track_change("q1", "a", "")
        tracker.track_change("q2", "b", "")
        tracker.clear_change("q1")

        assert tracker.dirty_questions == ["q2"]
        tracker.clear_all()
        assert "unsaved-changes-7-3-2" not in store

    def test_malformed_backup_entries_are_dropped(self, store):
        store.set_json("unsaved-changes-7-2-1", {
            "q1": "stale string",
            "q2": {"currentValue": "draft", "isDirty": True},
        })

        tracker = UnsavedChangesTracker(store, user_id=7, step_number=2)

        assert tracker.is_dirty("q1") is False
        assert tracker.current_value("q1") is None
        assert tracker.dirty_questions == ["q2"]
        assert tracker.current_value("q2") == "draft"


# ============================================================================
# Migrations
# ============================================================================

class TestWorkbookMigration:

    def test_parse_section_title(self):
        assert parse_section_title("workbook_2_messaging-3") == "Messaging"
        assert parse_section_title("oops") == "Unknown Section"

    def test_collect_step_two(self, store):
        store.set_item("workbook_2_pain-1", "Overwhelmed by marketing")
        store.set_item("workbook_2_pain-2", "   ")
        store.set_item("workbook_3_offer-1", "Not this step")

        responses = WorkbookMigration(store, None, 7).collect(2)

        assert responses == [{
            "questionKey": "pain-1",
            "responseText": "Overwhelmed by marketing",
            "sectionTitle": "Pain",
        }]

    def test_collect_sales_strategy(self, store):
        store.set_json("sales-strategy-responses-7", {"warm-outreach": "DM 5 people daily", "empty": ""})
        store.set_item("daily-connection-plan-7", "Mornings: LinkedIn")
        store.set_json("ai-location-suggestions-7", {"suggestions": ["Facebook groups"]})

        responses = WorkbookMigration(store, None, 7).collect(4)

        assert [r["questionKey"] for r in responses] == [
            "warm-outreach", "daily-connection-plan", "ai-location-suggestions",
        ]
        assert responses[1]["sectionTitle"] == "Daily Planning"

    @pytest.mark.asyncio
    async def test_migrate_success(self, store, api_client, backend):
        backend.add("POST", "/api/workbook-responses/migrate", (200, {"migrated": 1}))
        store.set_item("workbook_3_offer-1", "Group coaching")

        result = await WorkbookMigration(store, api_client, 7).migrate(3)

        assert result.migrated == 1
        assert result.toast.title == "Data Synchronized"
        assert store.get_item("workbook_3_offer-1") == "Group coaching"

    @pytest.mark.asyncio
    async def test_migrate_failure_keeps_local_data(self, store, api_client, backend):
        backend.add("POST", "/api/workbook-responses/migrate", (400, {"message": "Invalid"}))
        store.set_item("workbook_3_offer-1", "Group coaching")

        result = await WorkbookMigration(store, api_client, 7).migrate(3)

        assert result.migrated == 0
        assert result.toast.title == "Sync Failed"
        assert result.toast.variant == "destructive"
        assert "workbook_3_offer-1" in store

    @pytest.mark.asyncio
    async def test_nothing_to_migrate(self, store, api_client, backend):
        result = await WorkbookMigration(store, api_client, 7).migrate(2)
        assert result.migrated == 0 and result.toast is None
        assert backend.calls == []


class TestSectionCompletionMigration:

    @pytest.mark.asyncio
    async def test_replays_completed_sections(self, store, api_client, backend):
        backend.add("POST", "/api/section-completions", (
            200, {"userId": 7, "stepNumber": 1, "sectionTitle": "Your Story"}
        ))
        store.set_json("step-1-completed-sections-7", {
            "Your Story-completed": True,
            "Your Audience-completed": False,
        })

        result = await SectionCompletionMigration(store, api_client, 7).migrate()

        assert result.items == ["1-Your Story"]
        assert backend.body_of()["sectionTitle"] == "Your Story"
        assert "step-1-completed-sections-7" not in store

    @pytest.mark.asyncio
    async def test_failed_marks_are_skipped(self, store, api_client, backend):
        backend.add("POST", "/api/section-completions", (400, {"message": "Invalid section"}))
        store.set_json("step-2-completed-sections-7", {"Offer-completed": True})

        result = await SectionCompletionMigration(store, api_client, 7).migrate()

        assert result.migrated == 0
        assert "step-2-completed-sections-7" not in store

    @pytest.mark.asyncio
    async def test_malformed_data_is_left_alone(self, store, api_client):
        store.set_item("step-3-completed-sections-7", "{broken")

        result = await SectionCompletionMigration(store, api_client, 7).migrate()

        assert result.migrated == 0
        assert "step-3-completed-sections-7" in store
