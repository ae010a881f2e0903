"""Resilience – retry with exponential backoff and jitter."""
from fluxstore.resilience.retry.policy import RetryPolicy

__all__ = ["RetryPolicy"]
