"""Settings package exports."""

from .loader import (
    AppConfig,
    ApiSettings,
    ConfigError,
    DispatchSettings,
    LoggingSettings,
    PathSettings,
    load_config,
    read_toml,
)

__all__ = [
    "AppConfig",
    "ApiSettings",
    "ConfigError",
    "DispatchSettings",
    "LoggingSettings",
    "PathSettings",
    "load_config",
    "read_toml",
]
