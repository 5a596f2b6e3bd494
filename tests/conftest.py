"""Shared fixtures for the sync engine tests."""

from unittest.mock import Mock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from canvas_sync.core.config import SyncSettings, get_settings
from canvas_sync.models import EntityType
from canvas_sync.services.sync import (
    ConflictResolver,
    InMemoryEntityStore,
    InMemoryRemoteStore,
    SyncCoordinator,
    SyncScheduler,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Drop cached settings so environment patches take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sync_settings():
    return SyncSettings(interval_seconds=30.0, strategy="newer_wins")


@pytest.fixture
def mock_apscheduler():
    """Create a mock APScheduler instance."""
    scheduler = Mock(spec=AsyncIOScheduler)
    scheduler.running = False
    return scheduler


@pytest.fixture
def sync_scheduler(mock_apscheduler):
    return SyncScheduler(mock_apscheduler)


@pytest.fixture
def entity_stores():
    """One empty in-memory store per entity type."""
    return {entity_type: InMemoryEntityStore(entity_type) for entity_type in EntityType}


@pytest.fixture
def remote_store():
    return InMemoryRemoteStore(available=True)


@pytest.fixture
def coordinator(remote_store, entity_stores, sync_settings, sync_scheduler):
    """Create a coordinator wired to in-memory stores and a mock scheduler."""
    return SyncCoordinator(
        remote_store=remote_store,
        entity_stores=entity_stores.values(),
        resolver=ConflictResolver(sync_settings.strategy),
        settings=sync_settings,
        scheduler=sync_scheduler,
    )
