"""Tab group model."""

from datetime import datetime
from typing import ClassVar, List, Optional
from uuid import UUID

from pydantic import Field

from canvas_sync.models.base import EntityType, SyncEntity, utc_now

DEFAULT_GROUP_ICON = "folder.fill"
DEFAULT_GROUP_COLOR = "blue"


class TabGroup(SyncEntity):
    entity_type: ClassVar[EntityType] = EntityType.TAB_GROUP
    recency_field: ClassVar[Optional[str]] = "created_at"

    name: str
    icon: str = DEFAULT_GROUP_ICON
    color_name: str = DEFAULT_GROUP_COLOR
    tab_ids: List[UUID] = Field(default_factory=list)
    is_collapsed: bool = False
    created_at: datetime = Field(default_factory=utc_now)
