"""Observability – RequestContext, CorrelationContext."""
from __future__ import annotations

import contextlib
import dataclasses
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4


@dataclasses.dataclass(frozen=True)
class RequestContext:
    """Ambient context for one logical operation (request, CLI command, replay)."""
    request_id: str
    owner_id: str | None = None
    operation: str | None = None

    @classmethod
    def new(cls, owner_id: str | None = None, operation: str | None = None) -> "RequestContext":
        return cls(request_id=str(uuid4()), owner_id=owner_id, operation=operation)


_CTX_VAR: ContextVar[RequestContext | None] = ContextVar("_fluxstore_request_ctx", default=None)


class CorrelationContext:
    """Ambient correlation context stored in a ``ContextVar``.

    The event codec stamps ``request_id`` from here on events that do not
    carry one, and :class:`~fluxstore.observability.logging.CorrelationProcessor`
    adds it to every log line.
    """

    @staticmethod
    def set(ctx: RequestContext) -> None:
        _CTX_VAR.set(ctx)

    @staticmethod
    def get() -> RequestContext | None:
        return _CTX_VAR.get()

    @staticmethod
    def request_id() -> str | None:
        ctx = _CTX_VAR.get()
        return ctx.request_id if ctx is not None else None

    @staticmethod
    def get_or_new() -> RequestContext:
        ctx = _CTX_VAR.get()
        if ctx is None:
            ctx = RequestContext.new()
            _CTX_VAR.set(ctx)
        return ctx

    @staticmethod
    def clear() -> None:
        _CTX_VAR.set(None)

    @staticmethod
    @contextlib.contextmanager
    def scope(ctx: RequestContext | None = None) -> Iterator[RequestContext]:
        """Bind *ctx* (or a fresh one) for the duration of the block."""
        ctx = ctx or RequestContext.new()
        token = _CTX_VAR.set(ctx)
        try:
            yield ctx
        finally:
            _CTX_VAR.reset(token)


__all__ = ["CorrelationContext", "RequestContext"]
