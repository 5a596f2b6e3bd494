"""Bookmark and bookmark folder models."""

from datetime import datetime
from typing import ClassVar, Optional
from uuid import UUID

from pydantic import Field

from canvas_sync.models.base import EntityType, SyncEntity, utc_now


class Bookmark(SyncEntity):
    """A saved page. Bookmarks carry no modification timestamp."""

    entity_type: ClassVar[EntityType] = EntityType.BOOKMARK
    recency_field: ClassVar[Optional[str]] = "created_at"

    url: str
    title: str
    folder_id: Optional[UUID] = None
    favicon: Optional[str] = None  # base64 encoded
    created_at: datetime = Field(default_factory=utc_now)


class BookmarkFolder(SyncEntity):
    """A folder grouping bookmarks; folders nest through ``parent_id``."""

    entity_type: ClassVar[EntityType] = EntityType.BOOKMARK_FOLDER
    recency_field: ClassVar[Optional[str]] = "created_at"

    name: str
    parent_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utc_now)
