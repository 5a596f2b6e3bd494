"""Tests for the in-memory stores."""

import asyncio

import pytest

from canvas_sync.core.exceptions import RemoteStoreError, RemoteUnavailableError
from canvas_sync.models import EntityType
from canvas_sync.services.sync import (
    AvailabilityChanged,
    EntityStore,
    InMemoryEntityStore,
    InMemoryRemoteStore,
    RemoteStore,
    StoreChanged,
    entity_to_record,
    record_name,
)
from tests.helpers import make_bookmark, make_folder


class TestInMemoryEntityStore:
    """Test the in-memory entity store."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryEntityStore(EntityType.BOOKMARK), EntityStore)

    def test_initial_items(self):
        first, second = make_bookmark(), make_bookmark()
        store = InMemoryEntityStore(EntityType.BOOKMARK, [first, second])

        assert store.all() == [first, second]
        assert len(store) == 2

    def test_replace_all_collapses_duplicates(self):
        bookmark = make_bookmark()
        store = InMemoryEntityStore(EntityType.BOOKMARK)

        store.replace_all([bookmark, bookmark.replace(title="Copy")])

        assert store.all() == [bookmark]

    def test_rejects_other_entity_types(self):
        store = InMemoryEntityStore(EntityType.BOOKMARK)

        with pytest.raises(TypeError):
            store.upsert(make_folder())

    def test_upsert_inserts_new_items_first(self):
        old, new = make_bookmark(title="Old"), make_bookmark(title="New")
        store = InMemoryEntityStore(EntityType.BOOKMARK, [old])

        store.upsert(new)
        store.upsert(old.replace(title="Old renamed"))

        assert [b.title for b in store.all()] == ["New", "Old renamed"]

    def test_remove(self):
        bookmark = make_bookmark()
        store = InMemoryEntityStore(EntityType.BOOKMARK, [bookmark])

        assert store.remove(bookmark.id) is True
        assert store.remove(bookmark.id) is False
        assert store.get(bookmark.id) is None

    def test_user_mutations_post_events(self):
        queue = asyncio.Queue()
        store = InMemoryEntityStore(EntityType.BOOKMARK_FOLDER)
        store.attach(queue)
        store.attach(queue)
        folder = make_folder()

        store.add(folder)
        store.update(folder.replace(name="Renamed"))
        store.delete(folder.id)
        store.delete(folder.id)

        assert queue.qsize() == 3
        assert queue.get_nowait() == StoreChanged(EntityType.BOOKMARK_FOLDER)

    def test_engine_writes_are_silent(self):
        queue = asyncio.Queue()
        store = InMemoryEntityStore(EntityType.BOOKMARK)
        store.attach(queue)
        bookmark = make_bookmark()

        store.replace_all([bookmark])
        store.upsert(bookmark.replace(title="Changed"))
        store.remove(bookmark.id)

        assert queue.empty()

    def test_update_missing_item(self):
        store = InMemoryEntityStore(EntityType.BOOKMARK)

        with pytest.raises(KeyError):
            store.update(make_bookmark())


class TestInMemoryRemoteStore:
    """Test the in-memory remote store."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryRemoteStore(), RemoteStore)

    @pytest.mark.asyncio
    async def test_fetch_returns_pending_changes_once(self):
        remote = InMemoryRemoteStore()
        record = entity_to_record(make_bookmark())
        remote.put_remote(record)
        remote.delete_remote("Bookmark-GONE")

        batch = await remote.fetch_changes()
        assert batch.changed_records == [record]
        assert batch.deleted_record_ids == ["Bookmark-GONE"]

        assert (await remote.fetch_changes()).is_empty
        assert remote.fetch_count == 2

    @pytest.mark.asyncio
    async def test_save_records(self):
        remote = InMemoryRemoteStore()
        records = [entity_to_record(make_bookmark()) for _ in range(2)]

        saved = await remote.save_records(records)

        assert saved == records
        assert remote.save_count == 1
        assert set(remote.records) == {r.record_name for r in records}
        assert await remote.save_records([]) == []
        assert remote.save_count == 1

    @pytest.mark.asyncio
    async def test_saved_records_are_not_fetched_back(self):
        remote = InMemoryRemoteStore()
        await remote.save(entity_to_record(make_folder()))

        assert (await remote.fetch_changes()).is_empty

    @pytest.mark.asyncio
    async def test_delete(self):
        remote = InMemoryRemoteStore()
        bookmark = make_bookmark()
        await remote.save(entity_to_record(bookmark))
        name = record_name(EntityType.BOOKMARK, bookmark.id)

        await remote.delete(name)
        assert remote.records == {}

        with pytest.raises(RemoteStoreError) as exc_info:
            await remote.delete(name)
        assert exc_info.value.details == {"operation": "delete", "record_names": [name]}

    @pytest.mark.asyncio
    async def test_unavailable_store_raises(self):
        remote = InMemoryRemoteStore(available=False)

        with pytest.raises(RemoteUnavailableError):
            await remote.fetch_changes()
        with pytest.raises(RemoteUnavailableError):
            await remote.save_records([entity_to_record(make_bookmark())])
        with pytest.raises(RemoteUnavailableError):
            await remote.delete("Bookmark-X")

    def test_availability_events(self):
        queue = asyncio.Queue()
        remote = InMemoryRemoteStore(available=True)
        remote.attach(queue)

        remote.set_available(True)
        remote.set_available(False)
        remote.set_available(True)

        assert queue.get_nowait() == AvailabilityChanged(False)
        assert queue.get_nowait() == AvailabilityChanged(True)
        assert queue.empty()
