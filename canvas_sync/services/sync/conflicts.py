import logging
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)
from uuid import UUID

from canvas_sync.models import (
    Bookmark,
    BookmarkFolder,
    EntityType,
    GenTab,
    ReadingListItem,
    SyncEntity,
    TabGroup,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SyncEntity)


class ConflictStrategy(str, Enum):
    LOCAL_WINS = "local_wins"
    REMOTE_WINS = "remote_wins"
    NEWER_WINS = "newer_wins"
    MERGE = "merge"

    @property
    def description(self) -> str:
        return _STRATEGY_DESCRIPTIONS[self]


_STRATEGY_DESCRIPTIONS = {
    ConflictStrategy.LOCAL_WINS: "Local changes preferred",
    ConflictStrategy.REMOTE_WINS: "Remote changes preferred",
    ConflictStrategy.NEWER_WINS: "Newer changes preferred",
    ConflictStrategy.MERGE: "Changes merged",
}


class ConflictResolver:
    """Handles conflicts between local and remote versions during sync"""

    def __init__(
        self,
        default_strategy: Union[ConflictStrategy, str] = ConflictStrategy.NEWER_WINS,
    ):
        self.default_strategy = ConflictStrategy(default_strategy)
        self.conflict_log: List[Dict[str, Any]] = []
        self._mergers: Dict[EntityType, Callable[[Any, Any], SyncEntity]] = {
            EntityType.BOOKMARK: self._merge_bookmarks,
            EntityType.BOOKMARK_FOLDER: self._merge_folders,
            EntityType.READING_LIST_ITEM: self._merge_reading_list_items,
            EntityType.GEN_TAB: self._prefer_more_complete,
            EntityType.TAB_GROUP: self._merge_tab_groups,
        }

    def resolve(
        self,
        local: T,
        remote: T,
        strategy: Optional[Union[ConflictStrategy, str]] = None,
    ) -> Optional[T]:
        """
        Resolve a conflict between two versions of the same entity.

        Args:
            local: Version held by the local entity store
            remote: Version received from the remote store
            strategy: Overrides ``default_strategy`` for this call

        Returns:
            The resolved entity, or None when both versions are equal and
            nothing needs to be written

        Raises:
            ValueError: if the versions do not share the same id
            TypeError: if the versions are different entity types
        """
        if type(local) is not type(remote):
            raise TypeError(
                f"Cannot resolve {type(local).__name__} against {type(remote).__name__}"
            )
        if local.id != remote.id:
            raise ValueError(
                f"Cannot resolve different entities: {local.id} != {remote.id}"
            )

        if local == remote:
            return None

        strategy = ConflictStrategy(strategy or self.default_strategy)

        if strategy == ConflictStrategy.LOCAL_WINS:
            resolved, winner = local, "local"
        elif strategy == ConflictStrategy.REMOTE_WINS:
            resolved, winner = remote, "remote"
        elif strategy == ConflictStrategy.NEWER_WINS:
            if local.recency_field is None:
                # No recency field: fall back to the completeness rule
                resolved = self._mergers[local.entity_type](local, remote)
            else:
                resolved = local if local.recency > remote.recency else remote
            winner = "local" if resolved is local else "remote"
        else:
            resolved = self._mergers[local.entity_type](local, remote)
            if resolved is local:
                winner = "local"
            elif resolved is remote:
                winner = "remote"
            else:
                winner = "merged"

        self._log_conflict(
            entity_type=local.entity_type,
            entity_id=local.id,
            strategy=strategy,
            winner=winner,
        )
        return resolved  # type: ignore[return-value]

    def resolve_batch(
        self,
        local: Sequence[T],
        remote: Sequence[T],
        strategy: Optional[Union[ConflictStrategy, str]] = None,
    ) -> List[T]:
        """
        Reconcile a local collection with a remote one.

        Local records keep their order and come first; remote-only records
        are appended in remote order. Duplicate ids collapse to one record:
        the first local occurrence and the last remote occurrence.
        """
        remote_by_id: Dict[UUID, T] = {}
        remote_order: List[UUID] = []
        for item in remote:
            if item.id not in remote_by_id:
                remote_order.append(item.id)
            remote_by_id[item.id] = item

        result: List[T] = []
        processed_ids = set()

        for local_item in local:
            if local_item.id in processed_ids:
                logger.warning(f"Dropping duplicate local record {local_item.id}")
                continue
            processed_ids.add(local_item.id)

            remote_item = remote_by_id.get(local_item.id)
            if remote_item is None:
                result.append(local_item)
                continue

            resolved = self.resolve(local_item, remote_item, strategy)
            result.append(resolved if resolved is not None else local_item)

        for remote_id in remote_order:
            if remote_id not in processed_ids:
                result.append(remote_by_id[remote_id])

        return result

    def has_conflict(self, local: SyncEntity, remote: SyncEntity) -> bool:
        return local != remote

    # Merge rules

    def _merge_bookmarks(self, local: Bookmark, remote: Bookmark) -> Bookmark:
        if local.title != remote.title:
            title = local.title if local.created_at > remote.created_at else remote.title
        else:
            title = local.title

        return local.model_copy(
            update={
                "url": remote.url,
                "title": title,
                "folder_id": local.folder_id or remote.folder_id,
                "favicon": local.favicon if local.favicon is not None else remote.favicon,
            }
        )

    def _merge_folders(
        self, local: BookmarkFolder, remote: BookmarkFolder
    ) -> BookmarkFolder:
        if local.name != remote.name:
            name = local.name if local.created_at > remote.created_at else remote.name
        else:
            name = local.name

        return local.model_copy(
            update={
                "name": name,
                "parent_id": local.parent_id or remote.parent_id,
            }
        )

    def _merge_reading_list_items(
        self, local: ReadingListItem, remote: ReadingListItem
    ) -> ReadingListItem:
        # Read status only ever moves forward
        is_read = local.is_read or remote.is_read

        if local.read_at and remote.read_at:
            read_at = max(local.read_at, remote.read_at)
        else:
            read_at = local.read_at or remote.read_at

        local_excerpt = local.excerpt or None
        remote_excerpt = remote.excerpt or None
        if local_excerpt and remote_excerpt:
            excerpt = (
                local_excerpt
                if len(local_excerpt) > len(remote_excerpt)
                else remote_excerpt
            )
        else:
            excerpt = local_excerpt or remote_excerpt

        title = local.title if len(local.title) > len(remote.title) else remote.title

        return local.model_copy(
            update={
                "title": title,
                "excerpt": excerpt,
                "is_read": is_read,
                "added_at": min(local.added_at, remote.added_at),
                "read_at": read_at,
            }
        )

    def _prefer_more_complete(self, local: GenTab, remote: GenTab) -> GenTab:
        # GenTabs are append-mostly; more components means more complete
        if local.component_count >= remote.component_count:
            return local
        return remote

    def _merge_tab_groups(self, local: TabGroup, remote: TabGroup) -> TabGroup:
        tab_ids = list(local.tab_ids)
        seen = set(tab_ids)
        for tab_id in remote.tab_ids:
            if tab_id not in seen:
                seen.add(tab_id)
                tab_ids.append(tab_id)

        return local.model_copy(update={"tab_ids": tab_ids})

    # Reporting

    def _log_conflict(
        self,
        entity_type: EntityType,
        entity_id: UUID,
        strategy: ConflictStrategy,
        winner: str,
    ) -> None:
        """Log conflict for auditing"""
        conflict_entry = {
            "timestamp": datetime.now(timezone.utc),
            "entity_type": entity_type.value,
            "entity_id": str(entity_id),
            "strategy": strategy.value,
            "winner": winner,
        }

        self.conflict_log.append(conflict_entry)

        logger.info(
            f"Conflict resolved for {entity_type.value} {entity_id} "
            f"using {strategy.value} strategy: {winner} version kept"
        )

    def clear_log(self) -> None:
        self.conflict_log = []

    def get_conflict_summary(self) -> Dict[str, Any]:
        """Get summary of conflicts encountered"""
        return {
            "total_conflicts": len(self.conflict_log),
            "by_type": self._count_by_field(self.conflict_log, "entity_type"),
            "by_strategy": self._count_by_field(self.conflict_log, "strategy"),
            "by_winner": self._count_by_field(self.conflict_log, "winner"),
            "recent_conflicts": self.conflict_log[-10:],  # Last 10 conflicts
        }

    def generate_conflict_report(
        self, counts: Optional[Mapping[Union[EntityType, str], int]] = None
    ) -> str:
        """
        Render a human readable conflict report.

        Args:
            counts: Conflicts per entity type; tallied from the conflict log
                when omitted
        """
        if counts is None:
            tallied = self._count_by_field(self.conflict_log, "entity_type")
        else:
            tallied = {EntityType(key).value: value for key, value in counts.items()}

        total = sum(tallied.values())
        if total == 0:
            return "No conflicts detected during sync."

        lines = ["Sync Conflict Report:"]
        for entity_type in EntityType:
            count = tallied.get(entity_type.value, 0)
            if count > 0:
                lines.append(f"- {entity_type.label}: {count} conflicts resolved")
        lines.append(f"Resolution strategy: {self.default_strategy.description}")

        return "\n".join(lines)

    def _count_by_field(self, items: List[Dict], field: str) -> Dict[str, int]:
        """Count occurrences by field value"""
        counts: Dict[str, int] = {}
        for item in items:
            value = item.get(field)
            if value is not None:
                counts[str(value)] = counts.get(str(value), 0) + 1
        return counts
