"""Application-layer errors — configuration and operator-facing failures."""

from __future__ import annotations

from fluxstore.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


__all__ = ["ApplicationError"]
