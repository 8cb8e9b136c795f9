from __future__ import annotations


class ConfigError(Exception):
    """Base class for configuration errors."""


class FatalConfigError(ConfigError):
    """
    The process cannot run with the current configuration.

    Raised by the loader instead of exiting. The process entry point is expected to turn it
    into termination.
    """


class ConfigFileError(ConfigError):
    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class ConfigWriteError(ConfigError):
    pass
