"""Tests for sync result models."""

from datetime import datetime, timezone

from freezegun import freeze_time

from canvas_sync.models import EntityType
from canvas_sync.services.sync.models import SyncResult, SyncStats, SyncStatus


class TestSyncStats:
    def test_per_type_counters(self):
        stats = SyncStats()
        stats[EntityType.BOOKMARK].created = 2
        stats[EntityType.GEN_TAB].created = 1
        stats[EntityType.TAB_GROUP].pushed = 4

        assert stats.total_created == 3
        assert stats.total_pushed == 4
        assert stats.total_updated == 0
        assert set(stats.by_type) == set(EntityType)


class TestSyncResult:
    """Test sync result status handling."""

    def test_complete_without_errors(self):
        result = SyncResult()
        result.complete()

        assert result.status == SyncStatus.SUCCESS
        assert result.succeeded
        assert result.completed_at is not None

    def test_errors_without_pushes_fail(self):
        result = SyncResult()
        result.add_error("Bookmark", "push", "Quota exceeded")
        result.complete()

        assert result.status == SyncStatus.FAILED
        assert result.errors[0].message == "Quota exceeded"

    def test_errors_with_pushes_are_partial(self):
        result = SyncResult()
        result.stats[EntityType.BOOKMARK].pushed = 3
        result.add_error("TabGroup", "push", "Server rejected")
        result.complete()

        assert result.status == SyncStatus.PARTIAL
        assert not result.succeeded

    def test_explicit_status(self):
        result = SyncResult()
        result.complete(SyncStatus.FAILED)
        assert result.status == SyncStatus.FAILED

    def test_skipped(self):
        result = SyncResult.skipped("remote_unavailable")

        assert result.status == SyncStatus.SKIPPED
        assert result.reason == "remote_unavailable"
        assert not result.succeeded

    def test_duration(self):
        with freeze_time("2024-01-01 12:00:00") as frozen:
            result = SyncResult()
            assert result.duration_seconds is None
            frozen.tick(2.5)
            result.complete()

        assert result.duration_seconds == 2.5

    @freeze_time("2024-01-01 12:00:00")
    def test_to_dict(self):
        result = SyncResult()
        result.stats[EntityType.READING_LIST_ITEM].deleted = 1
        result.stats.skipped_records = 2
        for i in range(12):
            result.add_error("Bookmark", f"id-{i}", "failed")
        result.complete()

        data = result.to_dict()

        assert data["status"] == "failed"
        assert data["started_at"] == datetime(2024, 1, 1, 12, tzinfo=timezone.utc).isoformat()
        assert data["deleted"] == 1
        assert data["skipped_records"] == 2
        assert len(data["errors"]) == 10
        assert data["errors"][0] == {
            "entity_type": "Bookmark",
            "entity_id": "id-0",
            "error": "failed",
        }
