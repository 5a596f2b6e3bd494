"""
Entity models package.

Exports every synchronized entity type together with the closed
``EntityType`` enum and the ``ENTITY_CLASSES`` lookup.
"""

from typing import Dict, Type

from canvas_sync.models.base import EntityType, SyncEntity, utc_now
from canvas_sync.models.bookmark import Bookmark, BookmarkFolder
from canvas_sync.models.gen_tab import GenTab, SourceAttribution
from canvas_sync.models.reading_list import ReadingListItem
from canvas_sync.models.tab_group import TabGroup

ENTITY_CLASSES: Dict[EntityType, Type[SyncEntity]] = {
    EntityType.BOOKMARK: Bookmark,
    EntityType.BOOKMARK_FOLDER: BookmarkFolder,
    EntityType.READING_LIST_ITEM: ReadingListItem,
    EntityType.GEN_TAB: GenTab,
    EntityType.TAB_GROUP: TabGroup,
}

__all__ = [
    "Bookmark",
    "BookmarkFolder",
    "ENTITY_CLASSES",
    "EntityType",
    "GenTab",
    "ReadingListItem",
    "SourceAttribution",
    "SyncEntity",
    "TabGroup",
    "utc_now",
]
