"""Base model shared by every synchronized entity."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityType(str, Enum):
    """Closed set of synchronized entity types.

    The value doubles as the remote record type and as the record-name
    prefix, so it must stay byte-identical to the remote schema.
    """

    BOOKMARK = "Bookmark"
    BOOKMARK_FOLDER = "BookmarkFolder"
    READING_LIST_ITEM = "ReadingListItem"
    GEN_TAB = "GenTab"
    TAB_GROUP = "TabGroup"

    @property
    def label(self) -> str:
        """Human readable category name used in reports."""
        return _LABELS[self]


_LABELS = {
    EntityType.BOOKMARK: "Bookmarks",
    EntityType.BOOKMARK_FOLDER: "Bookmark Folders",
    EntityType.READING_LIST_ITEM: "Reading List",
    EntityType.GEN_TAB: "GenTabs",
    EntityType.TAB_GROUP: "Tab Groups",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEntity(BaseModel):
    """
    Base class for entities kept in an entity store.

    Instances compare by value, which is what the conflict resolver uses to
    detect the "no change" case.
    """

    model_config = ConfigDict(frozen=True)

    entity_type: ClassVar[EntityType]
    # Attribute compared by the newer-wins strategy, None when the type has none
    recency_field: ClassVar[Optional[str]] = None

    id: UUID = Field(default_factory=uuid4)

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, v: Any) -> Any:
        # Naive and aware timestamps cannot be compared
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def recency(self) -> Optional[datetime]:
        if self.recency_field is None:
            return None
        return getattr(self, self.recency_field)

    def replace(self, **changes: Any) -> "SyncEntity":
        """Return a copy with the given fields changed; the id never changes."""
        if "id" in changes and changes["id"] != self.id:
            raise ValueError("Entity identity cannot be changed")
        return self.model_copy(update=changes)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
