"""Observability – SensitiveFieldsFilter."""
from __future__ import annotations

from typing import Any

from fluxstore.kernel.security import DEFAULT_SENSITIVE_FIELDS, is_envelope


class SensitiveFieldsFilter:
    """Replace values of sensitive keys (and encrypted envelopes) with ``[REDACTED]``."""

    REDACTED = "[REDACTED]"

    def __init__(self, sensitive_fields: frozenset[str] | None = None) -> None:
        self._fields = sensitive_fields or DEFAULT_SENSITIVE_FIELDS

    def redact_deep(self, data: dict[str, Any]) -> dict[str, Any]:
        """Recursively redact nested dicts."""
        result: dict[str, Any] = {}
        for k, v in data.items():
            if k.lower() in self._fields or is_envelope(v):
                result[k] = self.REDACTED
            elif isinstance(v, dict):
                result[k] = self.redact_deep(v)
            else:
                result[k] = v
        return result

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:  # noqa: ARG002
        return self.redact_deep(event_dict)


__all__ = ["SensitiveFieldsFilter"]
