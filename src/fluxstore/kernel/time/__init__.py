"""Kernel time."""
from fluxstore.kernel.time.clock import (
    Clock,
    FrozenClock,
    SystemClock,
    ensure_utc,
    parse_timestamp,
    utc_now,
)

__all__ = ["Clock", "FrozenClock", "SystemClock", "ensure_utc", "parse_timestamp", "utc_now"]
