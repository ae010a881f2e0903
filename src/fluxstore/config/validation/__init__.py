"""Config validation errors."""
from fluxstore.config.validation.errors import (
    AppFactoryError,
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)

__all__ = ["AppFactoryError", "ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
