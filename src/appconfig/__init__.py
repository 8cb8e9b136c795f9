"""Environment-aware JSON configuration loading with environment variable overrides."""

from appconfig.config import (
    Config,
    ConfigError,
    ConfigLoader,
    ConfigWriteError,
    FatalConfigError,
    LoaderSettings,
    configure,
    get_config_path,
    load,
    reload,
    watch,
)

__all__ = [
    "Config",
    "ConfigError",
    "ConfigLoader",
    "ConfigWriteError",
    "FatalConfigError",
    "LoaderSettings",
    "configure",
    "get_config_path",
    "load",
    "reload",
    "watch",
]
