"""Testing fakes – recording and failing event subscribers."""
from __future__ import annotations

from typing import Sequence

from fluxstore.application.event_sourcing.bus import EventSubscriber
from fluxstore.application.event_sourcing.stored_event import StoredEvent


class RecordingSubscriber(EventSubscriber):
    """Keeps every delivered batch."""

    def __init__(self, event_names: frozenset[str] | None = None) -> None:
        self.event_names = event_names
        self.batches: list[list[StoredEvent]] = []

    async def handle(self, events: Sequence[StoredEvent]) -> None:
        self.batches.append(list(events))

    @property
    def received(self) -> list[StoredEvent]:
        return [e for batch in self.batches for e in batch]


class FailingSubscriber(EventSubscriber):
    """Raises on every delivery."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RuntimeError("subscriber down")
        self.calls = 0

    async def handle(self, events: Sequence[StoredEvent]) -> None:
        self.calls += 1
        raise self.error


__all__ = ["FailingSubscriber", "RecordingSubscriber"]
