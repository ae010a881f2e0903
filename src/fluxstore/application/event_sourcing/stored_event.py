"""Application event sourcing – StoredEvent."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from fluxstore.kernel.time.clock import ensure_utc, parse_timestamp, utc_now


@dataclasses.dataclass(frozen=True)
class StoredEvent:
    """An event as persisted in the event log.

    Rows are append-only: once written, a stored event is never updated or
    deleted.  ``(stream_id, stream_version)`` is unique.
    """

    stream_id: str
    """Identity of the aggregate the event belongs to."""

    stream_name: str
    """Aggregate type of the stream; selects the aggregate class and snapshot type."""

    event_name: str
    """Logical type tag (``DomainEvent.EVENT_NAME``)."""

    payload: dict[str, Any]
    """JSON-serialisable event data; personal fields hold encrypted envelopes."""

    stream_version: int = 0
    """1-based, monotonically increasing sequence number within the stream.

    ``0`` until the store assigns it on append.
    """

    event_version: int = 1
    """Schema version of ``payload``, used for upcasting."""

    occurred_on: datetime = dataclasses.field(default_factory=utc_now)

    request_id: str | None = None
    """Correlation id of the request that produced the event."""

    owner_id: str | None = None
    """Data subject the event is attributed to; selects the encryption key."""

    meta_data: dict[str, Any] = dataclasses.field(default_factory=dict)

    position: int | None = None
    """Global insertion order, assigned by the store."""

    def to_dict(self) -> dict[str, Any]:
        """Return the event wire shape."""
        return {
            "stream_id": self.stream_id,
            "stream_name": self.stream_name,
            "event_name": self.event_name,
            "event_version": self.event_version,
            "stream_version": self.stream_version,
            "payload": self.payload,
            "occurred_on": ensure_utc(self.occurred_on).isoformat(),
            "request_id": self.request_id,
            "owner_id": self.owner_id,
            "meta_data": self.meta_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoredEvent":
        occurred_on = data["occurred_on"]
        if isinstance(occurred_on, str):
            occurred_on = parse_timestamp(occurred_on)
        return cls(
            stream_id=data["stream_id"],
            stream_name=data["stream_name"],
            event_name=data["event_name"],
            payload=dict(data.get("payload") or {}),
            stream_version=int(data.get("stream_version", 0)),
            event_version=int(data.get("event_version", 1)),
            occurred_on=ensure_utc(occurred_on),
            request_id=data.get("request_id"),
            owner_id=data.get("owner_id"),
            meta_data=dict(data.get("meta_data") or {}),
            position=data.get("position"),
        )


__all__ = ["StoredEvent"]
