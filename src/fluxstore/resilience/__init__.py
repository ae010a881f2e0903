"""Resilience – retry of optimistic-concurrency conflicts."""

from fluxstore.resilience.retry import RetryPolicy

__all__ = ["RetryPolicy"]
