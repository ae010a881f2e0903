"""Observability – structured logging helpers."""
from fluxstore.observability.logging.factory import JsonLoggerFactory
from fluxstore.observability.logging.filters import SensitiveFieldsFilter
from fluxstore.observability.logging.processors import CorrelationProcessor, get_logger

__all__ = [
    "CorrelationProcessor",
    "JsonLoggerFactory",
    "SensitiveFieldsFilter",
    "get_logger",
]
