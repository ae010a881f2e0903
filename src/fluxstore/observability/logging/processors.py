"""Observability – structlog processors and get_logger helper.

CorrelationProcessor — injects request_id/owner_id/operation into log events.
get_logger(name) — returns a bound structlog logger.
"""
from __future__ import annotations

from typing import Any

import structlog

from fluxstore.observability.correlation import CorrelationContext


class CorrelationProcessor:
    """structlog processor that injects context from :class:`CorrelationContext`.

    Injects the following fields when a :class:`RequestContext` is active:

    * ``request_id``
    * ``owner_id`` (only when not ``None``)
    * ``operation`` (only when not ``None``)
    """

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        ctx = CorrelationContext.get()
        if ctx is not None:
            event_dict.setdefault("request_id", ctx.request_id)
            if ctx.owner_id is not None:
                event_dict.setdefault("owner_id", ctx.owner_id)
            if ctx.operation is not None:
                event_dict.setdefault("operation", ctx.operation)
        return event_dict


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


__all__ = ["CorrelationProcessor", "get_logger"]
