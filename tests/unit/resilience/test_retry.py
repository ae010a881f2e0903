"""Unit tests for RetryPolicy."""

from __future__ import annotations

import asyncio

import pytest

from fluxstore.kernel.errors import ConcurrencyConflictError, StorageUnavailableError
from fluxstore.resilience.retry import RetryPolicy


class Flaky:
    """Fails with *error* for the first *failures* calls."""

    def __init__(self, failures: int, error: Exception | None = None) -> None:
        self.failures = failures
        self.error = error or ConcurrencyConflictError("budget-1", 3, 4)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "saved"


# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------


class TestDelay:
    def test_exponential_without_jitter(self) -> None:
        policy = RetryPolicy(base_delay=0.1, max_delay=10.0, jitter=False)
        assert [policy.delay_for(n) for n in range(4)] == pytest.approx([0.1, 0.2, 0.4, 0.8])

    def test_capped(self) -> None:
        policy = RetryPolicy(base_delay=1.0, max_delay=2.5, jitter=False)
        assert policy.delay_for(10) == 2.5

    def test_jitter_within_bounds(self) -> None:
        policy = RetryPolicy(base_delay=0.5, max_delay=1.0, jitter=True)
        for _ in range(50):
            assert 0.0 <= policy.delay_for(3) <= 1.0

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


# ---------------------------------------------------------------------------
# execute_async
# ---------------------------------------------------------------------------


class TestExecuteAsync:
    def test_succeeds_first_time(self) -> None:
        func = Flaky(failures=0)
        assert asyncio.run(RetryPolicy(base_delay=0).execute_async(func)) == "saved"
        assert func.calls == 1

    def test_retries_conflicts(self) -> None:
        func = Flaky(failures=2)
        result = asyncio.run(RetryPolicy(max_attempts=3, base_delay=0).execute_async(func))
        assert result == "saved"
        assert func.calls == 3

    def test_gives_up_after_max_attempts(self) -> None:
        func = Flaky(failures=5)
        with pytest.raises(ConcurrencyConflictError):
            asyncio.run(RetryPolicy(max_attempts=3, base_delay=0).execute_async(func))
        assert func.calls == 3

    def test_other_errors_not_retried(self) -> None:
        func = Flaky(failures=1, error=StorageUnavailableError("database down"))
        with pytest.raises(StorageUnavailableError):
            asyncio.run(RetryPolicy(max_attempts=3, base_delay=0).execute_async(func))
        assert func.calls == 1

    def test_custom_retryable_exceptions(self) -> None:
        func = Flaky(failures=1, error=StorageUnavailableError("database down"))
        policy = RetryPolicy(base_delay=0, retryable_exceptions=(StorageUnavailableError,))
        assert asyncio.run(policy.execute_async(func)) == "saved"
        assert func.calls == 2

    def test_sleeps_between_attempts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        delays: list[float] = []

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        func = Flaky(failures=2)
        asyncio.run(RetryPolicy(max_attempts=3, base_delay=0.1, max_delay=5.0, jitter=False).execute_async(func))
        assert delays == pytest.approx([0.2, 0.4])
