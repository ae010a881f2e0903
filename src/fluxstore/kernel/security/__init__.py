"""Kernel security – sensitive field names and envelope detection."""
from fluxstore.kernel.security.pii import DEFAULT_SENSITIVE_FIELDS, is_envelope

__all__ = ["DEFAULT_SENSITIVE_FIELDS", "is_envelope"]
