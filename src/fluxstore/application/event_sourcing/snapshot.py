"""Application event sourcing – SnapshotPolicy, SnapshotStore port, InMemorySnapshotStore."""

from __future__ import annotations

import abc
import dataclasses
from datetime import datetime
from typing import Any

from fluxstore.kernel.ddd.aggregate import AggregateRoot
from fluxstore.kernel.time.clock import ensure_utc, parse_timestamp, utc_now

DEFAULT_SNAPSHOT_FREQUENCY = 50


@dataclasses.dataclass(frozen=True)
class SnapshotRecord:
    """Serialised aggregate state at ``version``.

    ``version`` never exceeds the stream head; ``(aggregate_id, version)``
    is unique.
    """

    aggregate_id: str
    aggregate_type: str
    version: int
    data: dict[str, Any]
    created_at: datetime = dataclasses.field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Return the snapshot wire shape."""
        return {
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "version": self.version,
            "data": self.data,
            "created_at": ensure_utc(self.created_at).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotRecord":
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = parse_timestamp(created_at)
        return cls(
            aggregate_id=data["aggregate_id"],
            aggregate_type=data["aggregate_type"],
            version=int(data["version"]),
            data=dict(data["data"]),
            created_at=ensure_utc(created_at),
        )


class SnapshotPolicy:
    """Take a snapshot whenever the persisted version is a multiple of ``frequency``."""

    def __init__(self, frequency: int = DEFAULT_SNAPSHOT_FREQUENCY) -> None:
        if frequency < 1:
            raise ValueError("frequency must be >= 1")
        self.frequency = frequency

    def should_snapshot(self, aggregate: AggregateRoot) -> bool:
        return aggregate.version > 0 and aggregate.version % self.frequency == 0


class SnapshotStore(abc.ABC):
    """Port — store and retrieve aggregate state snapshots.

    Snapshots only shorten replay: reconstruction from a snapshot plus the
    events after it must equal a full replay.
    """

    @abc.abstractmethod
    async def save(self, record: SnapshotRecord) -> None:
        """Persist *record*; saving the same ``(aggregate_id, version)`` twice is a no-op."""

    @abc.abstractmethod
    async def latest(
        self,
        aggregate_id: str,
        aggregate_type: str,
        max_version: int | None = None,
    ) -> SnapshotRecord | None:
        """Most recent snapshot, optionally with ``version <= max_version``."""


class InMemorySnapshotStore(SnapshotStore):
    """In-memory :class:`SnapshotStore` for tests and local development."""

    def __init__(self) -> None:
        # (aggregate_type, aggregate_id) → snapshots by version
        self._snapshots: dict[tuple[str, str], dict[int, SnapshotRecord]] = {}

    async def save(self, record: SnapshotRecord) -> None:
        by_version = self._snapshots.setdefault((record.aggregate_type, record.aggregate_id), {})
        by_version.setdefault(record.version, record)

    async def latest(
        self,
        aggregate_id: str,
        aggregate_type: str,
        max_version: int | None = None,
    ) -> SnapshotRecord | None:
        by_version = self._snapshots.get((aggregate_type, aggregate_id), {})
        usable = [v for v in by_version if max_version is None or v <= max_version]
        return by_version[max(usable)] if usable else None

    def all_snapshots(self) -> list[SnapshotRecord]:
        return [r for by_version in self._snapshots.values() for r in by_version.values()]


__all__ = [
    "DEFAULT_SNAPSHOT_FREQUENCY",
    "InMemorySnapshotStore",
    "SnapshotPolicy",
    "SnapshotRecord",
    "SnapshotStore",
]
