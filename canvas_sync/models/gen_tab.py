"""GenTab model: a tab whose content was generated from one or more sources."""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from canvas_sync.models.base import EntityType, SyncEntity, utc_now


class SourceAttribution(BaseModel):
    """A page the generated content was built from."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    url: str
    title: str
    domain: str


class GenTab(SyncEntity):
    """
    Generated-content tab.

    Components are opaque to the sync engine; their count is used as a
    completeness measure when two versions diverge.
    """

    entity_type: ClassVar[EntityType] = EntityType.GEN_TAB

    title: str
    icon: str
    components: List[Dict[str, Any]] = Field(default_factory=list)
    source_urls: List[SourceAttribution] = Field(default_factory=list)
    html: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def component_count(self) -> int:
        return len(self.components)
