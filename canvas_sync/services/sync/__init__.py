from .classifier import ChangeClassifier, ClassifiedChanges, Tombstone
from .conflicts import ConflictResolver, ConflictStrategy
from .coordinator import SyncCoordinator
from .models import EntityStats, SyncError, SyncResult, SyncStats, SyncStatus
from .records import (
    ChangeBatch,
    RemoteRecord,
    entity_to_record,
    parse_record_name,
    record_name,
    record_to_entity,
)
from .scheduler import SyncScheduler
from .stores import (
    AvailabilityChanged,
    EntityStore,
    InMemoryEntityStore,
    InMemoryRemoteStore,
    RemoteStore,
    StoreChanged,
)

__all__ = [
    "AvailabilityChanged",
    "ChangeBatch",
    "ChangeClassifier",
    "ClassifiedChanges",
    "ConflictResolver",
    "ConflictStrategy",
    "EntityStats",
    "EntityStore",
    "InMemoryEntityStore",
    "InMemoryRemoteStore",
    "RemoteRecord",
    "RemoteStore",
    "StoreChanged",
    "SyncCoordinator",
    "SyncError",
    "SyncResult",
    "SyncScheduler",
    "SyncStats",
    "SyncStatus",
    "Tombstone",
    "entity_to_record",
    "parse_record_name",
    "record_name",
    "record_to_entity",
]
