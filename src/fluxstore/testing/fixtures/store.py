"""Testing fixtures – in-memory event store wiring and a SQLite URL."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fluxstore.application.event_sourcing.codec import EventCodec
from fluxstore.application.event_sourcing.snapshot import InMemorySnapshotStore
from fluxstore.application.event_sourcing.store import InMemoryEventStore
from fluxstore.kernel.time import FrozenClock
from fluxstore.security.encryption import FieldEncryptor, InMemoryKeyManager
from fluxstore.testing.fakes.budget import BudgetRepository, budget_event_map


@pytest.fixture
def frozen_clock():
    """FrozenClock pinned to 2026-01-01 12:00 UTC."""
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def event_map():
    events = budget_event_map()
    events.validate()
    return events


@pytest.fixture
def key_manager():
    return InMemoryKeyManager()


@pytest.fixture
def codec(event_map, key_manager):
    return EventCodec(event_map, FieldEncryptor(key_manager, event_map))


@pytest.fixture
def event_store():
    return InMemoryEventStore(page_size=4)


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def budget_repository(event_store, codec):
    return BudgetRepository(event_store, codec)


@pytest.fixture
def sqlite_url(tmp_path):
    """URL of a fresh SQLite database file (aiosqlite driver)."""
    return f"sqlite+aiosqlite:///{tmp_path / 'fluxstore.db'}"


__all__ = [
    "budget_repository",
    "codec",
    "event_map",
    "event_store",
    "frozen_clock",
    "key_manager",
    "snapshot_store",
    "sqlite_url",
]
