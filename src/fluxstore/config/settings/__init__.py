"""Config settings – 12-factor env-based configuration."""
from fluxstore.config.settings.base import FluxStoreSettings, Settings
from fluxstore.config.settings.loaders import EnvSettingsLoader, SettingsLoader

__all__ = ["EnvSettingsLoader", "FluxStoreSettings", "Settings", "SettingsLoader"]
