"""Config – 12-factor settings and loaders."""

from fluxstore.config.settings import EnvSettingsLoader, FluxStoreSettings, Settings, SettingsLoader
from fluxstore.config.validation import ConfigError, InvalidSettingValueError, MissingRequiredSettingError

__all__ = [
    "ConfigError",
    "EnvSettingsLoader",
    "FluxStoreSettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
