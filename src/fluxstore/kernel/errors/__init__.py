"""Kernel error hierarchy — public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError                  (domain.py)
    │   ├── InvariantViolationError
    │   ├── ValidationError
    │   ├── NotFoundError
    │   │   └── StreamNotFoundError
    │   └── ConflictError
    │       └── UniquenessViolationError
    ├── ApplicationError             (application.py)
    └── InfrastructureError          (infrastructure.py)
        ├── ConcurrencyConflictError
        ├── StorageUnavailableError
        ├── PublishError
        ├── SerializationError
        ├── StreamEmptyError
        ├── UnknownEventTypeError
        ├── EncryptionError
        ├── DecryptionError
        │   └── SubjectErasedError
        ├── ReplayBatchError
        └── ProjectionNotFoundError
"""

from fluxstore.kernel.errors.application import ApplicationError
from fluxstore.kernel.errors.base import BaseError
from fluxstore.kernel.errors.domain import (
    ConflictError,
    DomainError,
    InvariantViolationError,
    NotFoundError,
    StreamNotFoundError,
    UniquenessViolationError,
    ValidationError,
)
from fluxstore.kernel.errors.infrastructure import (
    ConcurrencyConflictError,
    DecryptionError,
    EncryptionError,
    InfrastructureError,
    ProjectionNotFoundError,
    PublishError,
    ReplayBatchError,
    SerializationError,
    StorageUnavailableError,
    StreamEmptyError,
    SubjectErasedError,
    UnknownEventTypeError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConcurrencyConflictError",
    "ConflictError",
    "DecryptionError",
    "DomainError",
    "EncryptionError",
    "InfrastructureError",
    "InvariantViolationError",
    "NotFoundError",
    "ProjectionNotFoundError",
    "PublishError",
    "ReplayBatchError",
    "SerializationError",
    "StorageUnavailableError",
    "StreamEmptyError",
    "StreamNotFoundError",
    "SubjectErasedError",
    "UniquenessViolationError",
    "UnknownEventTypeError",
    "ValidationError",
]
