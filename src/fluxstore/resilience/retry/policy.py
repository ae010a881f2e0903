"""Resilience – RetryPolicy for optimistic-concurrency conflicts."""
from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from fluxstore.kernel.errors import ConcurrencyConflictError
from fluxstore.observability.logging import get_logger

T = TypeVar("T")
logger = get_logger(__name__)


class RetryPolicy:
    """Retry a whole load-mutate-save cycle when another writer won the race.

    Delay after the *n*-th failure is ``base_delay * 2**n`` capped at
    ``max_delay``; with ``jitter`` it is drawn uniformly from ``[0, delay]``.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.05,
        max_delay: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: tuple[type[Exception], ...] = (ConcurrencyConflictError,),
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions

    def _should_retry(self, exc: Exception) -> bool:
        return isinstance(exc, self.retryable_exceptions)

    def delay_for(self, attempt: int) -> float:
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        if self.jitter:
            return random.uniform(0, delay)
        return delay

    async def execute_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Execute *func* asynchronously, retrying on retryable exceptions."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await func()
            except Exception as exc:
                if not self._should_retry(exc) or attempt == self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.info(
                    "retry.scheduled",
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay=round(delay, 4),
                    error=type(exc).__name__,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover


__all__ = ["RetryPolicy"]
