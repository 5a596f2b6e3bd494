from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from canvas_sync.models import EntityType


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SyncStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SyncError:
    entity_type: str
    entity_id: str
    error_message: str
    timestamp: datetime = field(default_factory=_now)
    details: Optional[Dict[str, Any]] = None

    @property
    def message(self) -> str:
        """Alias for error_message"""
        return self.error_message


@dataclass
class EntityStats:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    pushed: int = 0


@dataclass
class SyncStats:
    by_type: Dict[EntityType, EntityStats] = field(
        default_factory=lambda: {entity_type: EntityStats() for entity_type in EntityType}
    )
    skipped_records: int = 0
    skipped_tombstones: int = 0

    def __getitem__(self, entity_type: EntityType) -> EntityStats:
        return self.by_type[entity_type]

    def _total(self, attr_name: str) -> int:
        return sum(getattr(stats, attr_name) for stats in self.by_type.values())

    @property
    def total_created(self) -> int:
        return self._total("created")

    @property
    def total_updated(self) -> int:
        return self._total("updated")

    @property
    def total_deleted(self) -> int:
        return self._total("deleted")

    @property
    def total_pushed(self) -> int:
        return self._total("pushed")


@dataclass
class SyncResult:
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None
    status: SyncStatus = SyncStatus.SUCCESS
    reason: Optional[str] = None
    errors: List[SyncError] = field(default_factory=list)
    stats: SyncStats = field(default_factory=SyncStats)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def succeeded(self) -> bool:
        return self.status == SyncStatus.SUCCESS

    def add_error(
        self,
        entity_type: str,
        entity_id: str,
        error_message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.errors.append(
            SyncError(
                entity_type=entity_type,
                entity_id=entity_id,
                error_message=error_message,
                details=details,
            )
        )

    def complete(self, status: Optional[SyncStatus] = None) -> None:
        self.completed_at = _now()
        if status:
            self.status = status
        elif self.errors:
            self.status = (
                SyncStatus.PARTIAL if self.stats.total_pushed > 0 else SyncStatus.FAILED
            )
        else:
            self.status = SyncStatus.SUCCESS

    @classmethod
    def skipped(cls, reason: str) -> "SyncResult":
        result = cls(reason=reason)
        result.complete(SyncStatus.SKIPPED)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "created": self.stats.total_created,
            "updated": self.stats.total_updated,
            "deleted": self.stats.total_deleted,
            "pushed": self.stats.total_pushed,
            "skipped_records": self.stats.skipped_records,
            "skipped_tombstones": self.stats.skipped_tombstones,
            "errors": [
                {
                    "entity_type": e.entity_type,
                    "entity_id": e.entity_id,
                    "error": e.error_message,
                }
                for e in self.errors[:10]  # Limit to first 10 errors
            ],
        }
