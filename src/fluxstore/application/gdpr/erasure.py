"""Application GDPR – ErasureService and crypto-shredding.

Event rows are immutable, so personal data is erased by deleting the key
that encrypts it.  The rows stay in the log; their personal fields (and any
snapshot sealed with the same key) can no longer be decrypted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Protocol, runtime_checkable

from fluxstore.kernel.time.clock import utc_now
from fluxstore.observability.logging import get_logger
from fluxstore.security.encryption.keys import KeyManager

logger = get_logger(__name__)

__all__ = [
    "CryptoShreddingEraser",
    "DataErasedEvent",
    "Erasable",
    "ErasureResult",
    "ErasureService",
]


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErasureResult:
    scope: str
    success: bool
    detail: str | None = None


@dataclass(frozen=True)
class DataErasedEvent:
    subject_id: str
    results: tuple[ErasureResult, ...]
    erased_at: datetime = field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return all(r.success for r in self.results)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

@runtime_checkable
class Erasable(Protocol):
    @property
    def scope(self) -> str: ...
    async def erase(self, subject_id: str) -> ErasureResult: ...


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class CryptoShreddingEraser:
    """Deletes the subject's data key from the :class:`KeyManager`."""

    def __init__(self, key_manager: KeyManager, scope: str = "event_store") -> None:
        self._key_manager = key_manager
        self._scope = scope

    @property
    def scope(self) -> str:
        return self._scope

    async def erase(self, subject_id: str) -> ErasureResult:
        existed = await self._key_manager.delete_key(subject_id)
        return ErasureResult(
            scope=self._scope,
            success=True,
            detail="key deleted" if existed else "no key on record",
        )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

class ErasureService:
    """Orchestrates erasure across all registered Erasable handlers.

    A failing handler is reported in its :class:`ErasureResult` and does not
    stop the others.
    """

    def __init__(self, handlers: Iterable[Erasable] = ()) -> None:
        self._handlers: list[Erasable] = list(handlers)
        self.events: list[DataErasedEvent] = []

    def register(self, handler: Erasable) -> None:
        self._handlers.append(handler)

    async def erase(self, subject_id: str) -> DataErasedEvent:
        results: list[ErasureResult] = []
        for handler in self._handlers:
            try:
                result = await handler.erase(subject_id)
            except Exception as exc:  # noqa: BLE001
                logger.error("gdpr.erasure_failed", subject_id=subject_id, scope=handler.scope, error=repr(exc))
                result = ErasureResult(scope=handler.scope, success=False, detail=str(exc))
            results.append(result)
        event = DataErasedEvent(subject_id=subject_id, results=tuple(results))
        self.events.append(event)
        logger.info("gdpr.subject_erased", subject_id=subject_id, succeeded=event.succeeded)
        return event
