import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from canvas_sync.core.exceptions import RecordDecodeError
from canvas_sync.models import EntityType, SyncEntity

from .records import ChangeBatch, RemoteRecord, parse_record_name, record_to_entity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tombstone:
    """A decoded remote deletion."""

    entity_type: EntityType
    entity_id: UUID


@dataclass
class ClassifiedChanges:
    """Typed per-entity deltas produced from one change batch"""

    changed: Dict[EntityType, List[SyncEntity]] = field(
        default_factory=lambda: {entity_type: [] for entity_type in EntityType}
    )
    deleted: Dict[EntityType, Set[UUID]] = field(
        default_factory=lambda: {entity_type: set() for entity_type in EntityType}
    )
    skipped_records: int = 0
    skipped_tombstones: int = 0

    @property
    def is_empty(self) -> bool:
        return not any(self.changed.values()) and not any(self.deleted.values())

    def counts(self) -> Dict[str, Tuple[int, int]]:
        """(changed, deleted) counts keyed by entity type value"""
        return {
            entity_type.value: (
                len(self.changed[entity_type]),
                len(self.deleted[entity_type]),
            )
            for entity_type in EntityType
        }


class ChangeClassifier:
    """Turns opaque remote changes into typed entities and tombstones"""

    def classify_record(self, record: RemoteRecord) -> Optional[SyncEntity]:
        """Decode one changed record, or None if it cannot be decoded"""
        try:
            return record_to_entity(record)
        except RecordDecodeError as e:
            logger.error(f"Skipping undecodable record: {e.message}")
            return None

    def decode_tombstone(self, record_name: str) -> Optional[Tombstone]:
        """Decode a deleted record name, or None if it is not recognised"""
        try:
            entity_type, entity_id = parse_record_name(record_name)
        except RecordDecodeError as e:
            logger.warning(f"Ignoring tombstone: {e.message}")
            return None
        return Tombstone(entity_type=entity_type, entity_id=entity_id)

    def classify_batch(self, batch: ChangeBatch) -> ClassifiedChanges:
        """
        Classify a whole change batch.

        A record that appears more than once keeps its last version, at the
        position of its first appearance.
        """
        result = ClassifiedChanges()
        positions: Dict[Tuple[EntityType, UUID], int] = {}

        for record in batch.changed_records:
            entity = self.classify_record(record)
            if entity is None:
                result.skipped_records += 1
                continue

            bucket = result.changed[entity.entity_type]
            key = (entity.entity_type, entity.id)
            if key in positions:
                bucket[positions[key]] = entity
            else:
                positions[key] = len(bucket)
                bucket.append(entity)

        for name in batch.deleted_record_ids:
            tombstone = self.decode_tombstone(name)
            if tombstone is None:
                result.skipped_tombstones += 1
                continue
            result.deleted[tombstone.entity_type].add(tombstone.entity_id)

        logger.debug(
            f"Classified batch: {len(batch.changed_records)} records, "
            f"{len(batch.deleted_record_ids)} tombstones, "
            f"{result.skipped_records + result.skipped_tombstones} skipped"
        )
        return result
