"""Test helper functions."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from canvas_sync.models import (
    Bookmark,
    BookmarkFolder,
    GenTab,
    ReadingListItem,
    TabGroup,
)

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Timestamp ``minutes`` after T0."""
    return T0 + timedelta(minutes=minutes)


def make_bookmark(id: Optional[UUID] = None, **kwargs: Any) -> Bookmark:
    values: Dict[str, Any] = {
        "url": "https://example.com",
        "title": "Example",
        "created_at": T0,
    }
    values.update(kwargs)
    return Bookmark(id=id or uuid4(), **values)


def make_folder(id: Optional[UUID] = None, **kwargs: Any) -> BookmarkFolder:
    values: Dict[str, Any] = {"name": "Reading", "created_at": T0}
    values.update(kwargs)
    return BookmarkFolder(id=id or uuid4(), **values)


def make_reading_item(id: Optional[UUID] = None, **kwargs: Any) -> ReadingListItem:
    values: Dict[str, Any] = {
        "url": "https://example.com/article",
        "title": "Article",
        "added_at": T0,
    }
    values.update(kwargs)
    return ReadingListItem(id=id or uuid4(), **values)


def make_components(count: int) -> List[Dict[str, Any]]:
    return [{"type": "text", "content": f"Section {i}"} for i in range(count)]


def make_gen_tab(
    id: Optional[UUID] = None, components: int = 1, **kwargs: Any
) -> GenTab:
    values: Dict[str, Any] = {
        "title": "Trip plan",
        "icon": "map",
        "components": make_components(components),
        "created_at": T0,
    }
    values.update(kwargs)
    return GenTab(id=id or uuid4(), **values)


def make_tab_group(id: Optional[UUID] = None, **kwargs: Any) -> TabGroup:
    values: Dict[str, Any] = {"name": "Work", "created_at": T0}
    values.update(kwargs)
    return TabGroup(id=id or uuid4(), **values)
