"""
Collaborator interfaces consumed by the sync engine, plus in-memory
implementations of both.

Entity stores and the remote store talk to the coordinator through explicit
messages posted on its event queue rather than through shared observers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import (
    Dict,
    Generic,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
    runtime_checkable,
)
from uuid import UUID

from canvas_sync.core.exceptions import RemoteStoreError, RemoteUnavailableError
from canvas_sync.models import EntityType, SyncEntity

from .records import ChangeBatch, RemoteRecord

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SyncEntity)


@dataclass(frozen=True)
class StoreChanged:
    """A user mutation happened in an entity store."""

    entity_type: EntityType


@dataclass(frozen=True)
class AvailabilityChanged:
    """The remote store became available or unavailable."""

    available: bool


SyncEvent = Union[StoreChanged, AvailabilityChanged]


@runtime_checkable
class RemoteStore(Protocol):
    @property
    def is_available(self) -> bool: ...

    async def fetch_changes(self) -> ChangeBatch: ...

    async def save_records(self, records: Sequence[RemoteRecord]) -> List[RemoteRecord]: ...

    async def save(self, record: RemoteRecord) -> RemoteRecord: ...

    async def delete(self, record_name: str) -> None: ...


@runtime_checkable
class EntityStore(Protocol[T]):
    entity_type: EntityType

    def all(self) -> List[T]: ...

    def replace_all(self, items: Iterable[T]) -> None: ...

    def upsert(self, item: T) -> None: ...

    def remove(self, entity_id: UUID) -> bool: ...

    def attach(self, queue: "asyncio.Queue[SyncEvent]") -> None: ...


class InMemoryEntityStore(Generic[T]):
    """
    Ordered in-memory collection keyed by id.

    ``add``/``update``/``delete`` are user mutations and post a
    ``StoreChanged`` event on every attached queue. ``replace_all``,
    ``upsert`` and ``remove`` are the engine's write path and stay silent.
    """

    def __init__(self, entity_type: EntityType, items: Optional[Iterable[T]] = None):
        self.entity_type = entity_type
        self._items: List[T] = []
        self._queues: List["asyncio.Queue[SyncEvent]"] = []
        if items:
            self.replace_all(items)

    def __len__(self) -> int:
        return len(self._items)

    def attach(self, queue: "asyncio.Queue[SyncEvent]") -> None:
        if queue not in self._queues:
            self._queues.append(queue)

    def all(self) -> List[T]:
        return list(self._items)

    def get(self, entity_id: UUID) -> Optional[T]:
        for item in self._items:
            if item.id == entity_id:
                return item
        return None

    def replace_all(self, items: Iterable[T]) -> None:
        collapsed: List[T] = []
        seen = set()
        for item in items:
            self._check_type(item)
            if item.id in seen:
                continue
            seen.add(item.id)
            collapsed.append(item)
        self._items = collapsed

    def upsert(self, item: T) -> None:
        self._check_type(item)
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[index] = item
                return
        self._items.insert(0, item)

    def remove(self, entity_id: UUID) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != entity_id]
        return len(self._items) != before

    # User mutations

    def add(self, item: T) -> None:
        self.upsert(item)
        self._notify()

    def update(self, item: T) -> None:
        if self.get(item.id) is None:
            raise KeyError(f"{self.entity_type.value} {item.id} not found")
        self.upsert(item)
        self._notify()

    def delete(self, entity_id: UUID) -> bool:
        removed = self.remove(entity_id)
        if removed:
            self._notify()
        return removed

    def _notify(self) -> None:
        event = StoreChanged(self.entity_type)
        for queue in self._queues:
            queue.put_nowait(event)

    def _check_type(self, item: SyncEntity) -> None:
        if item.entity_type is not self.entity_type:
            raise TypeError(
                f"{self.entity_type.value} store cannot hold {item.entity_type.value}"
            )


class InMemoryRemoteStore:
    """
    Remote store kept in process memory.

    Records written with ``save``/``save_records`` are stored by name;
    changes injected with ``put_remote``/``delete_remote`` are returned by
    the next ``fetch_changes`` call and then cleared, the way a server change
    token advances.
    """

    def __init__(self, available: bool = True):
        self.records: Dict[str, RemoteRecord] = {}
        self._available = available
        self._pending_changed: Dict[str, RemoteRecord] = {}
        self._pending_deleted: List[str] = []
        self._queues: List["asyncio.Queue[SyncEvent]"] = []
        self.fetch_count = 0
        self.save_count = 0

    @property
    def is_available(self) -> bool:
        return self._available

    def attach(self, queue: "asyncio.Queue[SyncEvent]") -> None:
        if queue not in self._queues:
            self._queues.append(queue)

    def set_available(self, available: bool) -> None:
        if available == self._available:
            return
        self._available = available
        logger.info(f"Remote store {'available' if available else 'unavailable'}")
        for queue in self._queues:
            queue.put_nowait(AvailabilityChanged(available))

    def put_remote(self, record: RemoteRecord) -> None:
        """Simulate a change made by another device."""
        self.records[record.record_name] = record
        self._pending_changed[record.record_name] = record

    def delete_remote(self, record_name: str) -> None:
        """Simulate a deletion made by another device."""
        self.records.pop(record_name, None)
        self._pending_changed.pop(record_name, None)
        self._pending_deleted.append(record_name)

    def _ensure_available(self) -> None:
        if not self._available:
            raise RemoteUnavailableError()

    async def fetch_changes(self) -> ChangeBatch:
        self._ensure_available()
        self.fetch_count += 1
        batch = ChangeBatch(
            changed_records=list(self._pending_changed.values()),
            deleted_record_ids=list(self._pending_deleted),
        )
        self._pending_changed = {}
        self._pending_deleted = []
        return batch

    async def save_records(self, records: Sequence[RemoteRecord]) -> List[RemoteRecord]:
        self._ensure_available()
        if not records:
            return []
        self.save_count += 1
        for record in records:
            self.records[record.record_name] = record
        return list(records)

    async def save(self, record: RemoteRecord) -> RemoteRecord:
        saved = await self.save_records([record])
        return saved[0]

    async def delete(self, record_name: str) -> None:
        self._ensure_available()
        if record_name not in self.records:
            raise RemoteStoreError(
                f"Record {record_name} not found",
                operation="delete",
                record_names=[record_name],
            )
        del self.records[record_name]
