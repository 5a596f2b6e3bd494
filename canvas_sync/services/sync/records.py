"""
Remote record representation and entity <-> record mapping.

Field names, record types and the ``<Type>-<UUID>`` record-name convention
are the wire contract with the remote store and must not change.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import ValidationError

from canvas_sync.core.exceptions import RecordDecodeError
from canvas_sync.models import (
    Bookmark,
    BookmarkFolder,
    EntityType,
    GenTab,
    ReadingListItem,
    SourceAttribution,
    SyncEntity,
    TabGroup,
    utc_now,
)
from canvas_sync.models.tab_group import DEFAULT_GROUP_COLOR, DEFAULT_GROUP_ICON


@dataclass
class RemoteRecord:
    """Opaque record exchanged with the remote store."""

    record_type: str
    record_name: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


@dataclass
class ChangeBatch:
    """Changes observed on the remote side since the last pull."""

    changed_records: List[RemoteRecord] = field(default_factory=list)
    deleted_record_ids: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.changed_records and not self.deleted_record_ids


def record_name(entity_type: EntityType, entity_id: UUID) -> str:
    """Build the remote record name for an entity."""
    return f"{entity_type.value}-{str(entity_id).upper()}"


def parse_record_name(name: str) -> Tuple[EntityType, UUID]:
    """
    Split a record name into its entity type and id.

    Raises:
        RecordDecodeError: if the prefix is unknown or the id is not a UUID
    """
    if not isinstance(name, str):
        raise RecordDecodeError(f"Invalid record name: {name!r}")

    # Longest prefix first so a future tag that extends another cannot shadow it
    for entity_type in sorted(EntityType, key=lambda t: len(t.value), reverse=True):
        prefix = f"{entity_type.value}-"
        if name.startswith(prefix):
            try:
                return entity_type, UUID(name[len(prefix) :])
            except ValueError as e:
                raise RecordDecodeError(
                    f"Invalid UUID in record name '{name}'",
                    record_type=entity_type.value,
                    record_name=name,
                ) from e

    raise RecordDecodeError(f"Unknown record name prefix: '{name}'", record_name=name)


def _optional_uuid(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _encode_json(value: Any) -> bytes:
    return json.dumps(value, default=str).encode("utf-8")


def _decode_json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def _require(record: RemoteRecord, *keys: str) -> None:
    missing = [key for key in keys if record.get(key) is None]
    if missing:
        raise RecordDecodeError(
            f"Record {record.record_name} is missing required fields: {', '.join(missing)}",
            record_type=record.record_type,
            record_name=record.record_name,
        )


def _new_record(entity: SyncEntity) -> RemoteRecord:
    return RemoteRecord(
        record_type=entity.entity_type.value,
        record_name=record_name(entity.entity_type, entity.id),
    )


# Encoders


def bookmark_to_record(bookmark: Bookmark) -> RemoteRecord:
    record = _new_record(bookmark)
    record.fields = {
        "url": bookmark.url,
        "title": bookmark.title,
        "folderId": str(bookmark.folder_id).upper() if bookmark.folder_id else None,
        "favicon": bookmark.favicon,
        "createdAt": bookmark.created_at,
    }
    return record


def folder_to_record(folder: BookmarkFolder) -> RemoteRecord:
    record = _new_record(folder)
    record.fields = {
        "name": folder.name,
        "parentId": str(folder.parent_id).upper() if folder.parent_id else None,
        "createdAt": folder.created_at,
    }
    return record


def reading_list_item_to_record(item: ReadingListItem) -> RemoteRecord:
    record = _new_record(item)
    record.fields = {
        "url": item.url,
        "title": item.title,
        "excerpt": item.excerpt,
        "isRead": item.is_read,
        "addedAt": item.added_at,
        "readAt": item.read_at,
    }
    return record


def gen_tab_to_record(gen_tab: GenTab) -> RemoteRecord:
    record = _new_record(gen_tab)
    record.fields = {
        "title": gen_tab.title,
        "icon": gen_tab.icon,
        "createdAt": gen_tab.created_at,
        "componentsData": _encode_json(gen_tab.components),
        "sourceURLsData": _encode_json(
            [source.model_dump(mode="json") for source in gen_tab.source_urls]
        ),
    }
    if gen_tab.html is not None:
        record.fields["html"] = gen_tab.html
    return record


def tab_group_to_record(group: TabGroup) -> RemoteRecord:
    record = _new_record(group)
    record.fields = {
        "name": group.name,
        "icon": group.icon,
        "colorName": group.color_name,
        "isCollapsed": group.is_collapsed,
        "createdAt": group.created_at,
        "tabIdsData": _encode_json([str(tab_id).upper() for tab_id in group.tab_ids]),
    }
    return record


# Decoders


def record_to_bookmark(record: RemoteRecord, entity_id: UUID) -> Bookmark:
    _require(record, "url", "title", "createdAt")
    return Bookmark(
        id=entity_id,
        url=record.get("url"),
        title=record.get("title"),
        folder_id=_optional_uuid(record.get("folderId")),
        favicon=record.get("favicon"),
        created_at=_as_datetime(record.get("createdAt")),
    )


def record_to_folder(record: RemoteRecord, entity_id: UUID) -> BookmarkFolder:
    _require(record, "name", "createdAt")
    return BookmarkFolder(
        id=entity_id,
        name=record.get("name"),
        parent_id=_optional_uuid(record.get("parentId")),
        created_at=_as_datetime(record.get("createdAt")),
    )


def record_to_reading_list_item(record: RemoteRecord, entity_id: UUID) -> ReadingListItem:
    _require(record, "url", "title", "addedAt")
    return ReadingListItem(
        id=entity_id,
        url=record.get("url"),
        title=record.get("title"),
        excerpt=record.get("excerpt"),
        is_read=bool(record.get("isRead", False)),
        added_at=_as_datetime(record.get("addedAt")),
        read_at=_as_datetime(record.get("readAt")),
    )


def record_to_gen_tab(record: RemoteRecord, entity_id: UUID) -> GenTab:
    _require(record, "title", "icon")

    # Malformed payloads decode as empty lists
    try:
        components = _decode_json(record.get("componentsData")) or []
    except ValueError:
        components = []
    try:
        sources = [
            SourceAttribution.model_validate(source)
            for source in _decode_json(record.get("sourceURLsData")) or []
        ]
    except (ValueError, TypeError):
        sources = []

    return GenTab(
        id=entity_id,
        title=record.get("title"),
        icon=record.get("icon"),
        components=components,
        source_urls=sources,
        html=record.get("html"),
        created_at=_as_datetime(record.get("createdAt")) or utc_now(),
    )


def record_to_tab_group(record: RemoteRecord, entity_id: UUID) -> TabGroup:
    _require(record, "name")

    tab_ids: List[UUID] = []
    try:
        for raw in _decode_json(record.get("tabIdsData")) or []:
            tab_id = _optional_uuid(raw)
            if tab_id is not None:
                tab_ids.append(tab_id)
    except (ValueError, TypeError):
        tab_ids = []

    return TabGroup(
        id=entity_id,
        name=record.get("name"),
        icon=record.get("icon") or DEFAULT_GROUP_ICON,
        color_name=record.get("colorName") or DEFAULT_GROUP_COLOR,
        tab_ids=tab_ids,
        is_collapsed=bool(record.get("isCollapsed", False)),
        created_at=_as_datetime(record.get("createdAt")) or utc_now(),
    )


Encoder = Callable[[Any], RemoteRecord]
Decoder = Callable[[RemoteRecord, UUID], SyncEntity]

ENCODERS: Dict[EntityType, Encoder] = {
    EntityType.BOOKMARK: bookmark_to_record,
    EntityType.BOOKMARK_FOLDER: folder_to_record,
    EntityType.READING_LIST_ITEM: reading_list_item_to_record,
    EntityType.GEN_TAB: gen_tab_to_record,
    EntityType.TAB_GROUP: tab_group_to_record,
}

DECODERS: Dict[EntityType, Decoder] = {
    EntityType.BOOKMARK: record_to_bookmark,
    EntityType.BOOKMARK_FOLDER: record_to_folder,
    EntityType.READING_LIST_ITEM: record_to_reading_list_item,
    EntityType.GEN_TAB: record_to_gen_tab,
    EntityType.TAB_GROUP: record_to_tab_group,
}

for _registry_name, _registry in (("encoder", ENCODERS), ("decoder", DECODERS)):
    _missing = set(EntityType) - set(_registry)
    if _missing:
        raise RuntimeError(
            f"No {_registry_name} registered for: "
            f"{', '.join(sorted(t.value for t in _missing))}"
        )


def entity_to_record(entity: SyncEntity) -> RemoteRecord:
    """Serialize any entity into its remote record."""
    return ENCODERS[entity.entity_type](entity)


def record_to_entity(record: RemoteRecord) -> SyncEntity:
    """
    Decode a remote record into its typed entity.

    Raises:
        RecordDecodeError: if the type is unknown, the record name does not
            match the type, or required fields are missing or invalid
    """
    try:
        entity_type = EntityType(record.record_type)
    except ValueError as e:
        raise RecordDecodeError(
            f"Unknown record type: {record.record_type}",
            record_type=record.record_type,
            record_name=record.record_name,
        ) from e

    name_type, entity_id = parse_record_name(record.record_name)
    if name_type is not entity_type:
        raise RecordDecodeError(
            f"Record name {record.record_name} does not match type {entity_type.value}",
            record_type=record.record_type,
            record_name=record.record_name,
        )

    try:
        return DECODERS[entity_type](record, entity_id)
    except ValidationError as e:
        raise RecordDecodeError(
            f"Invalid {entity_type.value} record {record.record_name}: {e.error_count()} errors",
            record_type=record.record_type,
            record_name=record.record_name,
        ) from e
