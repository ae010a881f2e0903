"""Application event sourcing – EventStore port and InMemoryEventStore."""

from __future__ import annotations

import abc
import asyncio
import dataclasses
from datetime import datetime
from typing import Collection, Sequence

from fluxstore.application.event_sourcing.bus import EventBus
from fluxstore.application.event_sourcing.stored_event import StoredEvent
from fluxstore.application.event_sourcing.stream import DEFAULT_PAGE_SIZE, EventStream
from fluxstore.kernel.errors import ConcurrencyConflictError, PublishError
from fluxstore.kernel.time.clock import ensure_utc
from fluxstore.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_READ_LIMIT = 5000


@dataclasses.dataclass(frozen=True)
class Commit:
    """Events to append to one stream, with the version the writer last saw."""

    stream_id: str
    events: Sequence[StoredEvent]
    expected_version: int


class EventStore(abc.ABC):
    """Port — durable append-only event log.

    ``expected_version`` drives **optimistic concurrency control**:

    - Pass ``0`` when creating a new stream (no events exist yet).
    - Pass the aggregate's ``version`` when appending to an existing stream.
    - Appended events get ``stream_version = expected_version + 1, + 2, …``.
      If another writer already used one of those versions the whole append
      fails with :class:`~fluxstore.kernel.errors.ConcurrencyConflictError`
      and nothing is written.

    Appended events are published to the bus before the transaction
    commits; if publishing fails the append is rolled back and
    :class:`~fluxstore.kernel.errors.PublishError` is raised.
    """

    def __init__(self, bus: EventBus | None = None, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self._bus = bus
        self._page_size = page_size

    @property
    def bus(self) -> EventBus | None:
        return self._bus

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def append(
        self,
        stream_id: str,
        events: Sequence[StoredEvent],
        expected_version: int,
    ) -> list[StoredEvent]:
        """Append *events* to *stream_id*; returns them with versions and positions."""
        return await self.append_batch([Commit(stream_id, events, expected_version)])

    @abc.abstractmethod
    async def append_batch(self, commits: Sequence[Commit]) -> list[StoredEvent]:
        """Append several commits atomically: all streams advance or none does."""

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def load(
        self,
        stream_id: str,
        as_of: datetime | None = None,
        after_version: int = 0,
    ) -> EventStream:
        """Return the lazy stream of events with ``stream_version > after_version``.

        With *as_of*, only events with ``occurred_on <= as_of`` are yielded.
        """
        cutoff = ensure_utc(as_of) if as_of is not None else None

        async def page(after: int, limit: int) -> list[StoredEvent]:
            return await self._read_page(stream_id, after, limit, cutoff, None)

        return EventStream(stream_id, page, self._page_size, after_version)

    def load_by_types(
        self,
        stream_id: str,
        event_names: Collection[str],
        as_of: datetime | None = None,
    ) -> EventStream:
        """Like :meth:`load`, restricted to the given event tags."""
        cutoff = ensure_utc(as_of) if as_of is not None else None
        names = frozenset(event_names)

        async def page(after: int, limit: int) -> list[StoredEvent]:
            return await self._read_page(stream_id, after, limit, cutoff, names)

        return EventStream(stream_id, page, self._page_size)

    @abc.abstractmethod
    async def _read_page(
        self,
        stream_id: str,
        after_version: int,
        limit: int,
        as_of: datetime | None,
        event_names: frozenset[str] | None,
    ) -> list[StoredEvent]:
        """One page of a stream, ascending by ``stream_version``."""

    @abc.abstractmethod
    async def current_version(self, stream_id: str) -> int:
        """Head ``stream_version`` of *stream_id*; ``0`` when it has no events."""

    @abc.abstractmethod
    async def version_at(self, stream_id: str, as_of: datetime) -> int:
        """Highest ``stream_version`` among events with ``occurred_on <= as_of``."""

    @abc.abstractmethod
    async def stream_name(self, stream_id: str) -> str | None:
        """Aggregate type recorded for *stream_id*, or ``None`` if unknown."""

    @abc.abstractmethod
    async def read_all(
        self,
        event_names: Collection[str] | None = None,
        from_date: datetime | None = None,
        offset: int = 0,
        limit: int = DEFAULT_READ_LIMIT,
    ) -> list[StoredEvent]:
        """One page of the global log ordered by ``position``."""

    @abc.abstractmethod
    async def count(self) -> int:
        """Total number of stored events."""

    # ------------------------------------------------------------------
    # Helpers for implementations
    # ------------------------------------------------------------------

    @staticmethod
    def _stamp(commit: Commit, stream_name: str | None = None) -> list[StoredEvent]:
        stamped: list[StoredEvent] = []
        for offset, event in enumerate(commit.events, start=1):
            if event.stream_id != commit.stream_id:
                raise ValueError(
                    f"Event for stream '{event.stream_id}' appended to '{commit.stream_id}'"
                )
            if stream_name is not None and event.stream_name != stream_name:
                raise ValueError(
                    f"Stream '{commit.stream_id}' is a '{stream_name}', not '{event.stream_name}'"
                )
            stamped.append(
                dataclasses.replace(
                    event,
                    stream_version=commit.expected_version + offset,
                    occurred_on=ensure_utc(event.occurred_on),
                )
            )
        return stamped

    async def _publish(self, events: list[StoredEvent]) -> None:
        if self._bus is None or not events:
            return
        try:
            await self._bus.publish(events)
        except Exception as exc:
            logger.error(
                "event_store.publish_failed",
                streams=sorted({e.stream_id for e in events}),
                count=len(events),
                error=repr(exc),
            )
            raise PublishError(
                f"Publishing {len(events)} appended event(s) failed; append rolled back",
                detail={"streams": sorted({e.stream_id for e in events})},
                cause=exc,
            ) from exc


class InMemoryEventStore(EventStore):
    """In-memory :class:`EventStore` for tests and local development.

    Appends are serialised by a lock held from the head check until the
    events are visible, so a rejected append is never published.
    """

    def __init__(self, bus: EventBus | None = None, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        super().__init__(bus, page_size)
        # stream_id → ordered list of StoredEvent
        self._streams: dict[str, list[StoredEvent]] = {}
        self._log: list[StoredEvent] = []
        self._next_position = 1
        self._lock = asyncio.Lock()

    async def append_batch(self, commits: Sequence[Commit]) -> list[StoredEvent]:
        commits = [c for c in commits if c.events]
        if not commits:
            return []
        async with self._lock:
            staged: list[StoredEvent] = []
            for commit in commits:
                self._check_head(commit)
                known = self._streams.get(commit.stream_id)
                staged.extend(self._stamp(commit, known[0].stream_name if known else None))
            staged = [dataclasses.replace(e, position=self._next_position + i) for i, e in enumerate(staged)]
            await self._publish(staged)
            for event in staged:
                self._streams.setdefault(event.stream_id, []).append(event)
                self._log.append(event)
            self._next_position += len(staged)
        return staged

    def _check_head(self, commit: Commit) -> None:
        actual = len(self._streams.get(commit.stream_id, ()))
        if actual != commit.expected_version:
            raise ConcurrencyConflictError(commit.stream_id, commit.expected_version, actual)

    async def _read_page(
        self,
        stream_id: str,
        after_version: int,
        limit: int,
        as_of: datetime | None,
        event_names: frozenset[str] | None,
    ) -> list[StoredEvent]:
        page: list[StoredEvent] = []
        for event in self._streams.get(stream_id, ()):
            if event.stream_version <= after_version:
                continue
            if as_of is not None and event.occurred_on > as_of:
                continue
            if event_names is not None and event.event_name not in event_names:
                continue
            page.append(event)
            if len(page) == limit:
                break
        return page

    async def current_version(self, stream_id: str) -> int:
        return len(self._streams.get(stream_id, ()))

    async def version_at(self, stream_id: str, as_of: datetime) -> int:
        cutoff = ensure_utc(as_of)
        versions = [e.stream_version for e in self._streams.get(stream_id, ()) if e.occurred_on <= cutoff]
        return max(versions, default=0)

    async def stream_name(self, stream_id: str) -> str | None:
        stream = self._streams.get(stream_id)
        return stream[0].stream_name if stream else None

    async def read_all(
        self,
        event_names: Collection[str] | None = None,
        from_date: datetime | None = None,
        offset: int = 0,
        limit: int = DEFAULT_READ_LIMIT,
    ) -> list[StoredEvent]:
        names = frozenset(event_names) if event_names is not None else None
        start = ensure_utc(from_date) if from_date is not None else None
        selected = [
            e for e in self._log
            if (names is None or e.event_name in names)
            and (start is None or e.occurred_on >= start)
        ]
        return selected[offset:offset + limit]

    async def count(self) -> int:
        return len(self._log)

    def all_events(self, stream_id: str | None = None) -> list[StoredEvent]:
        """Return all stored events, optionally filtered by *stream_id*."""
        if stream_id is not None:
            return list(self._streams.get(stream_id, []))
        return list(self._log)


__all__ = ["DEFAULT_READ_LIMIT", "Commit", "EventStore", "InMemoryEventStore"]
