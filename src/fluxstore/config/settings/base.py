"""Config settings – Settings base class and FluxStoreSettings."""
from __future__ import annotations

import dataclasses
from typing import ClassVar

from fluxstore.config.validation import InvalidSettingValueError


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings."""

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


@dataclasses.dataclass
class FluxStoreSettings(Settings):
    """Runtime settings, read from ``FLUXSTORE_*`` environment variables."""

    _prefix: ClassVar[str] = "FLUXSTORE"

    database_url: str = "sqlite+aiosqlite:///fluxstore.db"
    snapshot_frequency: int = 50
    replay_batch_size: int = 5000
    stream_page_size: int = 500
    master_key: str | None = None
    log_level: str = "INFO"
    app: str | None = None

    def _validate(self) -> None:
        for name in ("snapshot_frequency", "replay_batch_size", "stream_page_size"):
            value = getattr(self, name)
            if value < 1:
                raise InvalidSettingValueError(name, value, "must be a positive integer")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise InvalidSettingValueError("log_level", self.log_level, "unknown level")
        if self.app is not None and ":" not in self.app:
            raise InvalidSettingValueError("app", self.app, "expected 'module:callable'")

    @property
    def master_keys(self) -> list[str]:
        """Fernet master keys, newest first (comma separated in the environment)."""
        if not self.master_key:
            return []
        return [k.strip() for k in self.master_key.split(",") if k.strip()]


__all__ = ["FluxStoreSettings", "Settings"]
