"""Reading list item model."""

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import Field

from canvas_sync.models.base import EntityType, SyncEntity, utc_now


class ReadingListItem(SyncEntity):
    entity_type: ClassVar[EntityType] = EntityType.READING_LIST_ITEM
    recency_field: ClassVar[Optional[str]] = "added_at"

    url: str
    title: str
    excerpt: Optional[str] = None
    is_read: bool = False
    added_at: datetime = Field(default_factory=utc_now)
    read_at: Optional[datetime] = None

    def mark_read(self, when: Optional[datetime] = None) -> "ReadingListItem":
        """Return a copy marked as read."""
        return self.model_copy(update={"is_read": True, "read_at": when or utc_now()})
