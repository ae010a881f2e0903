"""Testing fixtures – pytest plugin.

Enable with ``-p fluxstore.testing.fixtures`` (see ``pyproject.toml``) or::

    pytest_plugins = ["fluxstore.testing.fixtures"]
"""
from fluxstore.testing.fixtures.store import (
    budget_repository,
    codec,
    event_map,
    event_store,
    frozen_clock,
    key_manager,
    snapshot_store,
    sqlite_url,
)
from fluxstore.testing.fixtures.correlation import correlation_fixture

__all__ = [
    "budget_repository",
    "codec",
    "correlation_fixture",
    "event_map",
    "event_store",
    "frozen_clock",
    "key_manager",
    "snapshot_store",
    "sqlite_url",
]
