"""Kernel security – personal-data and secret field names kept out of logs."""
from __future__ import annotations

#: Keys whose values are redacted from structured log lines.
DEFAULT_SENSITIVE_FIELDS: frozenset[str] = frozenset({
    "password", "secret", "token", "api_key", "authorization",
    # key material and master keys
    "key", "key_material", "master_key", "master_keys",
    # AES-GCM envelope parts
    "ciphertext", "nonce", "tag",
})


def is_envelope(value: object) -> bool:
    """True when *value* looks like an encrypted field envelope."""
    return (
        isinstance(value, dict)
        and set(value) == {"ciphertext", "nonce", "tag"}
        and all(isinstance(v, str) for v in value.values())
    )


__all__ = ["DEFAULT_SENSITIVE_FIELDS", "is_envelope"]
