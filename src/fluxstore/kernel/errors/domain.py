"""Domain errors — business rule and invariant violations."""

from __future__ import annotations

from typing import Any

from fluxstore.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"


class InvariantViolationError(DomainError):
    """An aggregate invariant was violated."""

    default_code = "invariant_violation"


class ValidationError(DomainError):
    """Input data does not meet validation rules."""

    default_code = "validation_error"


class NotFoundError(DomainError):
    """The requested resource does not exist."""

    default_code = "not_found"

    def __init__(
        self,
        resource: str,
        identifier: Any = None,
        **kwargs: Any,
    ) -> None:
        msg = f"{resource} not found"
        if identifier is not None:
            msg = f"{resource} '{identifier}' not found"
        super().__init__(msg, **kwargs)
        self.resource = resource
        self.identifier = identifier


class StreamNotFoundError(NotFoundError):
    """No event was ever appended to the stream.

    Callers usually react by creating the aggregate (see the registry builder).
    """

    default_code = "stream_not_found"

    def __init__(self, stream_id: str, **kwargs: Any) -> None:
        super().__init__("Event stream", stream_id, detail={"stream_id": stream_id}, **kwargs)
        self.stream_id = stream_id


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


class UniquenessViolationError(ConflictError):
    """A registry value is already claimed by another owner."""

    default_code = "uniqueness_violation"

    def __init__(
        self,
        scope: str,
        value: str,
        claimant: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"'{value}' is already claimed in scope '{scope}'",
            detail={"scope": scope, "value": value, "claimant": claimant},
            **kwargs,
        )
        self.scope = scope
        self.value = value
        self.claimant = claimant


__all__ = [
    "ConflictError",
    "DomainError",
    "InvariantViolationError",
    "NotFoundError",
    "StreamNotFoundError",
    "UniquenessViolationError",
    "ValidationError",
]
