from appconfig.config.errors import ConfigError, ConfigFileError, ConfigWriteError, FatalConfigError
from appconfig.config.loader import (
    Config,
    ConfigLoader,
    configure,
    current,
    get_config_path,
    load,
    reload,
    reset,
    watch,
)
from appconfig.config.models import FileChangeEvent, LoaderSettings, LoggingSettings
from appconfig.config.store import ConfigStore

__all__ = [
    "Config",
    "ConfigError",
    "ConfigFileError",
    "ConfigLoader",
    "ConfigStore",
    "ConfigWriteError",
    "FatalConfigError",
    "FileChangeEvent",
    "LoaderSettings",
    "LoggingSettings",
    "configure",
    "current",
    "get_config_path",
    "load",
    "reload",
    "reset",
    "watch",
]
