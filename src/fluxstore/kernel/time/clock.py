"""Kernel time – Clock protocol + implementations."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Port: source of "now" for event timestamps and snapshot dates."""

    def now(self) -> datetime: ...


class SystemClock:
    """Production clock that delegates to ``datetime.now(UTC)``."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Test clock pinned to a fixed point in time."""

    def __init__(self, fixed: datetime) -> None:
        self._fixed = ensure_utc(fixed)

    def now(self) -> datetime:
        return self._fixed

    def advance(self, **kwargs: int | float) -> datetime:
        """Advance the frozen time by the given ``timedelta`` kwargs and return it."""
        self._fixed += timedelta(**kwargs)
        return self._fixed


def utc_now() -> datetime:
    """Shorthand for ``datetime.now(UTC)``."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.

    Naive values are taken to be UTC already; some drivers (SQLite) drop the
    offset on the way back from the database.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 date or datetime into an aware UTC datetime."""
    return ensure_utc(datetime.fromisoformat(raw))


__all__ = ["Clock", "FrozenClock", "SystemClock", "ensure_utc", "parse_timestamp", "utc_now"]
