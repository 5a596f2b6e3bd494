import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Union,
)
from uuid import UUID

from canvas_sync.core.config import SyncSettings, get_settings
from canvas_sync.core.exceptions import ConfigurationError
from canvas_sync.models import EntityType, SyncEntity

from .classifier import ChangeClassifier
from .conflicts import ConflictResolver
from .models import EntityStats, SyncResult, SyncStatus
from .records import ChangeBatch, entity_to_record, record_name
from .scheduler import PERIODIC_SYNC_JOB_ID, SyncScheduler
from .stores import AvailabilityChanged, EntityStore, RemoteStore, StoreChanged, SyncEvent

logger = logging.getLogger(__name__)

SYNC_STARTED = "sync_started"
SYNC_COMPLETED = "sync_completed"
SYNC_FAILED = "sync_failed"

SyncListener = Callable[[str, SyncResult], Any]


class SyncCoordinator:
    """
    Orchestrates synchronization between the entity stores and the remote store.

    All state transitions happen on the event loop that runs the coordinator.
    Store mutations and availability changes arrive as messages on ``events``
    and are consumed one at a time by the task started in ``start()``.
    """

    def __init__(
        self,
        remote_store: RemoteStore,
        entity_stores: Iterable[EntityStore],
        resolver: Optional[ConflictResolver] = None,
        settings: Optional[SyncSettings] = None,
        scheduler: Optional[SyncScheduler] = None,
        classifier: Optional[ChangeClassifier] = None,
    ):
        self.settings = settings or get_settings().sync
        self.remote_store = remote_store
        self.stores: Dict[EntityType, EntityStore] = {}
        for store in entity_stores:
            if store.entity_type in self.stores:
                raise ConfigurationError(
                    f"Duplicate entity store for {store.entity_type.value}",
                    config_key="entity_stores",
                )
            self.stores[store.entity_type] = store
        self.resolver = resolver or ConflictResolver(self.settings.strategy)
        self.classifier = classifier or ChangeClassifier()
        self.scheduler = scheduler or SyncScheduler()

        # Status surface
        self.is_syncing = False
        self.pending_changes = 0
        self.last_sync_at: Optional[datetime] = None

        self.events: "asyncio.Queue[SyncEvent]" = asyncio.Queue()
        self._remote_available = bool(remote_store.is_available)
        self._consumer_task: Optional["asyncio.Task[None]"] = None
        self._background_tasks: Set["asyncio.Task[Any]"] = set()
        self._listeners: List[SyncListener] = []

        for store in self.stores.values():
            store.attach(self.events)
        attach = getattr(remote_store, "attach", None)
        if callable(attach):
            attach(self.events)

    # Lifecycle

    def start(self, sync_on_start: bool = True) -> None:
        """
        Start consuming events and the periodic timer.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = loop.create_task(self._consume_events())

        self.scheduler.schedule_periodic_sync(
            self._scheduled_sync,
            self.settings.interval_seconds,
            misfire_grace_time=self.settings.misfire_grace_seconds,
        )
        self.scheduler.start()
        logger.info(
            f"Sync coordinator started (interval {self.settings.interval_seconds}s, "
            f"strategy {self.resolver.default_strategy.value})"
        )

        if sync_on_start and self.remote_store.is_available:
            self.trigger_sync()

    def stop(self) -> None:
        """
        Stop the timer and the event consumer.

        Passes are coordinator-owned background tasks, so a pass that is
        already running is left to finish.
        """
        self.scheduler.cancel_job(PERIODIC_SYNC_JOB_ID)
        self.scheduler.pause()
        if self._consumer_task is not None:
            self._consumer_task.cancel()
            self._consumer_task = None
        logger.info("Sync coordinator stopped")

    async def close(self) -> None:
        """Stop, wait for running passes, then shut the scheduler down."""
        self.stop()
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
        self.scheduler.shutdown()

    def add_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SyncListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Change tracking

    def mark_changed(self, entity_type: Union[EntityType, str]) -> None:
        entity_type = EntityType(entity_type)
        self.pending_changes += 1
        logger.debug(f"{entity_type.label} changed, pending sync")

    def mark_bookmarks_changed(self) -> None:
        self.mark_changed(EntityType.BOOKMARK)

    def mark_bookmark_folders_changed(self) -> None:
        self.mark_changed(EntityType.BOOKMARK_FOLDER)

    def mark_reading_list_changed(self) -> None:
        self.mark_changed(EntityType.READING_LIST_ITEM)

    def mark_gen_tabs_changed(self) -> None:
        self.mark_changed(EntityType.GEN_TAB)

    def mark_tab_groups_changed(self) -> None:
        self.mark_changed(EntityType.TAB_GROUP)

    def notify_availability(self, available: bool) -> None:
        """Post a remote availability change for the event consumer."""
        self.events.put_nowait(AvailabilityChanged(available))

    async def handle_event(self, event: SyncEvent) -> None:
        """Apply one event on the coordinator's context."""
        if isinstance(event, StoreChanged):
            self.mark_changed(event.entity_type)
        elif isinstance(event, AvailabilityChanged):
            was_available = self._remote_available
            self._remote_available = event.available
            if event.available and not was_available:
                logger.info("Remote store became available, starting full sync")
                self.trigger_sync()
        else:
            logger.warning(f"Ignoring unknown sync event: {event!r}")

    async def _consume_events(self) -> None:
        while True:
            event = await self.events.get()
            try:
                await self.handle_event(event)
            except Exception:
                logger.exception(f"Failed to handle sync event {event!r}")
            finally:
                self.events.task_done()

    # Sync operations

    async def sync_if_needed(self) -> Optional[SyncResult]:
        """Perform sync if there are pending changes"""
        if self.pending_changes == 0:
            return None
        return await self.perform_full_sync()

    def trigger_sync(self) -> "asyncio.Task[SyncResult]":
        """Start a full sync in the background and return its task."""
        return self._spawn(self.perform_full_sync())

    async def _scheduled_sync(self) -> None:
        # Timer tick; the pass runs as our own task so stopping the timer
        # cannot cancel it
        self._spawn(self.sync_if_needed())

    def _spawn(self, coro: Awaitable[Any]) -> "asyncio.Task[Any]":
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def perform_full_sync(self) -> SyncResult:
        """
        Pull remote changes, apply them locally, then push local collections.

        Never raises for transport or decode failures; the returned result
        carries the outcome.
        """
        if not self.remote_store.is_available:
            logger.warning("Sync skipped: remote store not available")
            return SyncResult.skipped("remote_unavailable")

        # Check and set with no await in between
        if self.is_syncing:
            logger.debug("Sync already in progress")
            return SyncResult.skipped("already_syncing")
        self.is_syncing = True
        # Changes marked while the pass runs stay pending for the next one
        pending_at_start = self.pending_changes

        result = SyncResult()
        try:
            await self._emit(SYNC_STARTED, result)
            logger.info("Starting full sync")

            try:
                batch = await self.remote_store.fetch_changes()
                if not batch.is_empty:
                    self._apply_remote_changes(batch, result)
            except Exception as e:
                logger.error(f"Sync failed: {str(e)}")
                result.add_error(
                    "sync", "pull", str(e), details=getattr(e, "details", None)
                )
                result.complete(SyncStatus.FAILED)
            else:
                await self._push_local_changes(result)
                result.complete()

            if result.succeeded:
                self.last_sync_at = datetime.now(timezone.utc)
                self.pending_changes = max(0, self.pending_changes - pending_at_start)
                logger.info("Sync completed successfully")
            else:
                if self.settings.clear_pending_on_failure:
                    self.pending_changes = max(
                        0, self.pending_changes - pending_at_start
                    )
                logger.warning(
                    f"Sync finished with status {result.status.value}: "
                    f"{len(result.errors)} errors"
                )
        finally:
            self.is_syncing = False

        await self._emit(SYNC_COMPLETED if result.succeeded else SYNC_FAILED, result)
        return result

    # Apply remote changes

    def _apply_remote_changes(self, batch: ChangeBatch, result: SyncResult) -> None:
        classified = self.classifier.classify_batch(batch)
        result.stats.skipped_records += classified.skipped_records
        result.stats.skipped_tombstones += classified.skipped_tombstones

        # Every changed record first, then every deletion
        for entity_type, remote_items in classified.changed.items():
            if not remote_items:
                continue
            store = self.stores.get(entity_type)
            if store is None:
                logger.warning(
                    f"No entity store for {entity_type.value}, "
                    f"skipping {len(remote_items)} changed records"
                )
                result.stats.skipped_records += len(remote_items)
                continue
            self._apply_changed(store, remote_items, result.stats[entity_type])

        for entity_type, deleted_ids in classified.deleted.items():
            if not deleted_ids:
                continue
            store = self.stores.get(entity_type)
            if store is None:
                result.stats.skipped_tombstones += len(deleted_ids)
                continue
            for entity_id in deleted_ids:
                if store.remove(entity_id):
                    result.stats[entity_type].deleted += 1

    def _apply_changed(
        self,
        store: EntityStore,
        remote_items: Sequence[SyncEntity],
        stats: EntityStats,
    ) -> None:
        local_items = store.all()
        local_by_id = {item.id: item for item in local_items}

        merged = self.resolver.resolve_batch(local_items, remote_items)
        merged_by_id = {item.id: item for item in merged}

        for remote_item in remote_items:
            local_item = local_by_id.get(remote_item.id)
            if local_item is None:
                stats.created += 1
            elif merged_by_id[remote_item.id] == local_item:
                stats.unchanged += 1
            else:
                stats.updated += 1

        store.replace_all(merged)
        logger.debug(
            f"Applied {len(remote_items)} remote {store.entity_type.label}: "
            f"{stats.created} new, {stats.updated} updated"
        )

    # Push local changes

    async def _push_local_changes(self, result: SyncResult) -> None:
        for entity_type in EntityType:
            store = self.stores.get(entity_type)
            if store is None:
                continue

            records = [entity_to_record(item) for item in store.all()]
            if not records:
                continue

            try:
                await self.remote_store.save_records(records)
            except Exception as e:
                logger.error(f"Failed to push {entity_type.label}: {str(e)}")
                result.add_error(
                    entity_type.value,
                    "push",
                    str(e),
                    details=getattr(e, "details", None),
                )
                continue

            result.stats[entity_type].pushed += len(records)
            logger.info(f"Pushed {len(records)} {entity_type.label} to remote store")

    # Single record actions

    async def sync_entity(self, entity: SyncEntity) -> bool:
        """Store an entity locally and push it to the remote store immediately."""
        store = self._store_for(entity.entity_type)
        store.upsert(entity)

        if not self.remote_store.is_available:
            logger.warning(
                f"Cannot sync {entity.entity_type.value} {entity.id}: "
                "remote store not available"
            )
            return False

        try:
            await self.remote_store.save(entity_to_record(entity))
        except Exception as e:
            logger.error(
                f"Failed to sync {entity.entity_type.value} {entity.id}: {str(e)}"
            )
            return False

        logger.info(f"Synced {entity.entity_type.value} {entity.id}")
        return True

    async def delete_entity_from_remote(
        self, entity_type: EntityType, entity_id: UUID
    ) -> bool:
        """Delete an entity's record from the remote store."""
        name = record_name(entity_type, entity_id)
        if not self.remote_store.is_available:
            logger.warning(f"Cannot delete {name}: remote store not available")
            return False

        try:
            await self.remote_store.delete(name)
        except Exception as e:
            logger.error(f"Failed to delete {name} from remote store: {str(e)}")
            return False

        logger.info(f"Deleted {name} from remote store")
        return True

    # Status

    def get_status(self) -> Dict[str, Any]:
        return {
            "is_syncing": self.is_syncing,
            "pending_changes": self.pending_changes,
            "last_sync_at": self.last_sync_at.isoformat() if self.last_sync_at else None,
            "remote_available": bool(self.remote_store.is_available),
            "strategy": self.resolver.default_strategy.value,
        }

    def conflict_report(self) -> str:
        return self.resolver.generate_conflict_report()

    def _store_for(self, entity_type: EntityType) -> EntityStore:
        store = self.stores.get(entity_type)
        if store is None:
            raise ConfigurationError(
                f"No entity store registered for {entity_type.value}",
                config_key="entity_stores",
            )
        return store

    async def _emit(self, event_name: str, result: SyncResult) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event_name, result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(f"Sync listener failed for {event_name}")
