"""Observability – correlation and structured logging."""

from fluxstore.observability.correlation import CorrelationContext, RequestContext
from fluxstore.observability.logging import JsonLoggerFactory, SensitiveFieldsFilter, get_logger

__all__ = [
    "CorrelationContext",
    "JsonLoggerFactory",
    "RequestContext",
    "SensitiveFieldsFilter",
    "get_logger",
]
