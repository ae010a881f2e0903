"""Kernel – framework-agnostic building blocks."""

from fluxstore.kernel.errors import (
    ApplicationError,
    BaseError,
    ConcurrencyConflictError,
    DomainError,
    InfrastructureError,
    StreamEmptyError,
    StreamNotFoundError,
    UniquenessViolationError,
    UnknownEventTypeError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConcurrencyConflictError",
    "DomainError",
    "InfrastructureError",
    "StreamEmptyError",
    "StreamNotFoundError",
    "UniquenessViolationError",
    "UnknownEventTypeError",
]
