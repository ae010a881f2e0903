"""Application event sourcing – lazy, restartable event streams.

An :class:`EventStream` is a description of "the events of stream X matching
these filters".  Iterating it opens an :class:`EventStreamCursor` that pulls
fixed-size pages from the store, keyed by the last ``stream_version`` seen, so
a long stream is never held in memory.  Each ``async for`` starts a new cursor
from the beginning.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Callable, Generic, TypeVar

from fluxstore.application.event_sourcing.stored_event import StoredEvent

T = TypeVar("T")
U = TypeVar("U")

#: ``(after_version, limit) -> page`` ordered by ``stream_version``.
PageLoader = Callable[[int, int], Awaitable[list[StoredEvent]]]

DEFAULT_PAGE_SIZE = 500


class EventStreamCursor:
    """Explicit cursor over one pass of an :class:`EventStream`."""

    def __init__(self, loader: PageLoader, page_size: int, after_version: int = 0) -> None:
        self._loader = loader
        self._page_size = page_size
        self._after_version = after_version
        self._buffer: list[StoredEvent] = []
        self._index = 0
        self._exhausted = False
        self.pages_read = 0

    @property
    def after_version(self) -> int:
        """``stream_version`` of the last event handed out."""
        return self._after_version

    def __aiter__(self) -> "EventStreamCursor":
        return self

    async def __anext__(self) -> StoredEvent:
        if self._index >= len(self._buffer):
            if self._exhausted:
                raise StopAsyncIteration
            await self._fetch()
            if not self._buffer:
                raise StopAsyncIteration
        event = self._buffer[self._index]
        self._index += 1
        self._after_version = event.stream_version
        return event

    async def _fetch(self) -> None:
        page = await self._loader(self._after_version, self._page_size)
        self.pages_read += 1
        self._buffer = page
        self._index = 0
        if len(page) < self._page_size:
            self._exhausted = True


class _StreamBase(Generic[T]):
    def __aiter__(self) -> AsyncIterator[T]:
        raise NotImplementedError

    async def to_list(self) -> list[T]:
        """Materialise the whole stream; prefer iteration for long streams."""
        return [item async for item in self]

    async def first(self) -> T | None:
        async for item in self:
            return item
        return None

    def map(self, func: Callable[[T], Awaitable[U]]) -> "MappedEventStream[U]":
        """Return a stream that applies the async *func* to every item lazily."""
        return MappedEventStream(self, func)


class EventStream(_StreamBase[StoredEvent]):
    """Restartable async-iterable of :class:`StoredEvent` for one stream."""

    def __init__(
        self,
        stream_id: str,
        loader: PageLoader,
        page_size: int = DEFAULT_PAGE_SIZE,
        after_version: int = 0,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.stream_id = stream_id
        self._loader = loader
        self._page_size = page_size
        self._after_version = after_version

    def cursor(self) -> EventStreamCursor:
        return EventStreamCursor(self._loader, self._page_size, self._after_version)

    def __aiter__(self) -> EventStreamCursor:
        return self.cursor()


class MappedEventStream(_StreamBase[T]):
    """Lazily transformed view of another restartable stream."""

    def __init__(self, source: _StreamBase[Any], func: Callable[[Any], Awaitable[T]]) -> None:
        self._source = source
        self._func = func

    def __aiter__(self) -> "_MappedCursor[T]":
        return _MappedCursor(self._source.__aiter__(), self._func)


class _MappedCursor(Generic[T]):
    def __init__(self, inner: AsyncIterator[Any], func: Callable[[Any], Awaitable[T]]) -> None:
        self._inner = inner
        self._func = func

    def __aiter__(self) -> "_MappedCursor[T]":
        return self

    async def __anext__(self) -> T:
        item = await self._inner.__anext__()
        return await self._func(item)


__all__ = ["DEFAULT_PAGE_SIZE", "EventStream", "EventStreamCursor", "MappedEventStream", "PageLoader"]
