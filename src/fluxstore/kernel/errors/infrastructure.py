"""Infrastructure errors — storage, serialisation, crypto and replay failures."""

from __future__ import annotations

from typing import Any

from fluxstore.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class ConcurrencyConflictError(InfrastructureError):
    """An append raced with another writer on the same stream.

    Recoverable: reload the aggregate and retry. The log is left unchanged.
    """

    default_code = "concurrency_conflict"

    def __init__(
        self,
        stream_id: str,
        expected: int,
        actual: int | None = None,
        **kwargs: Any,
    ) -> None:
        found = "unknown" if actual is None else str(actual)
        super().__init__(
            f"Concurrency conflict on stream '{stream_id}': "
            f"expected version {expected}, found {found}",
            detail={"stream_id": stream_id, "expected": expected, "actual": actual},
            **kwargs,
        )
        self.stream_id = stream_id
        self.expected = expected
        self.actual = actual


class StorageUnavailableError(InfrastructureError):
    """The backing store failed (connection, transaction, driver)."""

    default_code = "storage_unavailable"


class PublishError(InfrastructureError):
    """Notifying consumers of appended events failed; the append was rolled back."""

    default_code = "publish_failed"


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize a payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


class StreamEmptyError(InfrastructureError):
    """The stream exists but yielded no event for the requested view.

    Unlike :class:`~fluxstore.kernel.errors.StreamNotFoundError` this points at
    a defect (bad ``as_of``, wrong type filter, truncated data), never at
    "create the aggregate".
    """

    default_code = "stream_empty"

    def __init__(self, stream_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"Stream '{stream_id}' exists but produced no events",
            detail={"stream_id": stream_id},
            **kwargs,
        )
        self.stream_id = stream_id


class UnknownEventTypeError(InfrastructureError):
    """An event tag has no mapping (schema / version-mapping defect)."""

    default_code = "unknown_event_type"

    def __init__(self, event_name: str, target: str | None = None, **kwargs: Any) -> None:
        msg = f"Unknown event type '{event_name}'"
        if target:
            msg = f"{msg} for {target}"
        super().__init__(msg, detail={"event_name": event_name, "target": target}, **kwargs)
        self.event_name = event_name
        self.target = target


class EncryptionError(InfrastructureError):
    """A personal-data field could not be encrypted."""

    default_code = "encryption_failed"


class DecryptionError(InfrastructureError):
    """A personal-data field could not be decrypted (bad key or tag)."""

    default_code = "decryption_failed"


class SubjectErasedError(DecryptionError):
    """The owner's key is gone: the data subject exercised erasure."""

    default_code = "subject_erased"

    def __init__(self, owner_id: str, **kwargs: Any) -> None:
        super().__init__(
            f"No encryption key for owner '{owner_id}'",
            detail={"owner_id": owner_id},
            **kwargs,
        )
        self.owner_id = owner_id


class ReplayBatchError(InfrastructureError):
    """A projection replay batch failed; earlier batches stay committed."""

    default_code = "replay_batch_failed"

    def __init__(
        self,
        projection: str,
        offset: int,
        position: int | None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Failed to replay batch at offset {offset} (event {position}) "
            f"for projection '{projection}'",
            detail={"projection": projection, "offset": offset, "position": position},
            **kwargs,
        )
        self.projection = projection
        self.offset = offset
        self.position = position


class ProjectionNotFoundError(InfrastructureError):
    """No projection is registered under the given name."""

    default_code = "projection_not_found"

    def __init__(self, name: str, **kwargs: Any) -> None:
        super().__init__(f"Projection '{name}' is not registered", detail={"projection": name}, **kwargs)
        self.name = name


__all__ = [
    "ConcurrencyConflictError",
    "DecryptionError",
    "EncryptionError",
    "InfrastructureError",
    "ProjectionNotFoundError",
    "PublishError",
    "ReplayBatchError",
    "SerializationError",
    "StorageUnavailableError",
    "StreamEmptyError",
    "SubjectErasedError",
    "UnknownEventTypeError",
]
