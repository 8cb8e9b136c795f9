from __future__ import annotations

import logging
import os
import threading
from collections import ChainMap
from typing import Any, Callable, Dict, List, Mapping, Optional

from dotenv import dotenv_values

from appconfig.config.errors import ConfigFileError, ConfigWriteError, FatalConfigError
from appconfig.config.interfaces import ChangeCallback, KeyValueStore
from appconfig.config.models import FileChangeEvent, LoaderSettings
from appconfig.config.store import ConfigStore

logger = logging.getLogger(__name__)

KEY_ENV_PREFIX = "env_prefix"  # prefix for environment variable binding
KEY_ENV = "env"  # application environment, selects config.<env>.json
KEY_CONFIG = "config"  # explicit path of the config file
ALIAS_ENVIRONMENT = "environment"


class Config:
    """
    A successfully loaded configuration file plus its environment overrides.

    Typed reads delegate to the underlying store. The store belongs to this instance only.
    """

    def __init__(self, store: KeyValueStore, path: str) -> None:
        self._store = store
        self.path = path

    def __repr__(self) -> str:
        return f"Config(path={self.path!r})"

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def get(self, key: str) -> Any:
        return self._store.get(key)

    def get_string(self, key: str) -> str:
        return self._store.get_string(key)

    def get_int(self, key: str) -> int:
        return self._store.get_int(key)

    def get_float(self, key: str) -> float:
        return self._store.get_float(key)

    def get_bool(self, key: str) -> bool:
        return self._store.get_bool(key)

    def get_string_list(self, key: str) -> List[str]:
        return self._store.get_string_list(key)

    def get_string_map(self, key: str) -> Dict[str, Any]:
        return self._store.get_string_map(key)

    def is_set(self, key: str) -> bool:
        return self._store.is_set(key)

    def in_config(self, key: str) -> bool:
        return self._store.in_config(key)

    def all_keys(self) -> List[str]:
        return self._store.all_keys()

    def all_settings(self) -> Dict[str, Any]:
        return self._store.all_settings()

    def set(self, key: str, value: Any) -> None:
        """Set a value in memory only. Use save() to also persist it."""
        self._store.set(key, value)

    def save(self, key: str, value: Any) -> None:
        """Set a value and rewrite the whole config file with the current settings."""
        self._store.set(key, value)
        self.write_config()

    def write_config(self) -> None:
        try:
            self._store.write_config()
        except ConfigFileError as e:
            raise ConfigWriteError(f"failed to write changes to config file: {e}") from e

    def watch(self, callback: ChangeCallback) -> None:
        self._store.on_config_change(callback)
        self._store.watch_config()

    def stop_watching(self) -> None:
        self._store.stop_watching()


class ConfigLoader:
    """
    Resolves and loads the config file for the current environment.

    Path resolution, highest precedence first:
    - the `config` key (e.g. APP_CONFIG); absolute paths are used as is, relative ones are
      joined onto the working directory
    - `<cwd>/config.<env>.json` where `env` (e.g. APP_ENV or APP_ENVIRONMENT) defaults to "dev"

    Failures raise FatalConfigError; callers decide whether to exit.
    """

    def __init__(
        self,
        settings: Optional[LoaderSettings] = None,
        *,
        getcwd: Callable[[], str] = os.getcwd,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.settings = settings or LoaderSettings()
        self._getcwd = getcwd
        self._environ = environ

    def _working_dir(self) -> str:
        try:
            return self._getcwd()
        except OSError as e:
            raise FatalConfigError(f"failed to get current working directory: {e}") from e

    def _environment(self, cwd: str) -> Mapping[str, str]:
        base: Mapping[str, str] = os.environ if self._environ is None else self._environ
        if not self.settings.dotenv_path:
            return base
        dotenv_path = os.path.join(cwd, self.settings.dotenv_path)
        if not os.path.isfile(dotenv_path):
            return base
        # Real environment variables win over .env entries.
        values = {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
        logger.debug("config.dotenv_loaded path=%s vars=%d", dotenv_path, len(values))
        return ChainMap(base, values)  # type: ignore[arg-type]

    def new_store(self, environ: Optional[Mapping[str, str]] = None) -> ConfigStore:
        """Create a store with environment binding, aliases and defaults applied, but no file read."""
        settings = self.settings
        store = ConfigStore(
            key_delimiter=settings.key_delimiter,
            environ=environ if environ is not None else self._environ,
            watch_interval_seconds=settings.watch_interval_seconds,
        )
        # Automatic env has to be on before reading the prefix key, which is
        # itself only available from the unprefixed environment at this point.
        store.automatic_env()
        store.set_env_key_replacer(settings.key_delimiter, settings.env_key_replacement)
        prefix = settings.env_prefix
        if prefix is None:
            prefix = store.get_string(KEY_ENV_PREFIX)
        store.set_env_prefix(prefix.lower())
        store.set_type_by_default_value(True)

        store.register_alias(ALIAS_ENVIRONMENT, KEY_ENV)

        store.set_default(KEY_ENV, "")
        store.set_default(KEY_CONFIG, "")
        return store

    def get_config_path(self) -> str:
        cwd = self._working_dir()
        return self._resolve_path(cwd, self.new_store(self._environment(cwd)))

    def _resolve_path(self, cwd: str, store: ConfigStore) -> str:
        explicit = store.get_string(KEY_CONFIG)
        if explicit:
            if os.path.isabs(explicit):
                return explicit
            return os.path.normpath(os.path.join(cwd, explicit))

        env = store.get_string(KEY_ENV) or self.settings.default_env
        return os.path.join(cwd, self.settings.file_name_template.format(env=env))

    def load(self) -> Config:
        """Always reads the file. Use the module-level load() for the cached process-wide instance."""
        cwd = self._working_dir()
        store = self.new_store(self._environment(cwd))
        path = self._resolve_path(cwd, store)
        store.set_config_file(path)
        try:
            store.read_config()
        except ConfigFileError as e:
            raise FatalConfigError(f"failed to read config file, ensure that it exists: {e}") from e

        logger.info(
            "config.loaded path=%s env=%s env_prefix=%s",
            path,
            store.get_string(KEY_ENV) or self.settings.default_env,
            store.env_prefix or None,
        )
        return Config(store, path)


def _log_config_change(event: FileChangeEvent) -> None:
    logger.info("config.file_changed path=%s kind=%s", event.path, event.kind)


class _ConfigRegistry:
    """Process-wide current Config. All swaps happen under one lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._loader: Optional[ConfigLoader] = None
        self._config: Optional[Config] = None
        self._watch_callback: Optional[ChangeCallback] = None

    def _get_loader(self) -> ConfigLoader:
        if self._loader is None:
            self._loader = ConfigLoader()
        return self._loader

    def configure(self, loader: ConfigLoader) -> None:
        with self._lock:
            self._drop_current()
            self._loader = loader

    def reset(self) -> None:
        with self._lock:
            self._drop_current()
            self._loader = None

    def _drop_current(self) -> None:
        if self._config is not None:
            self._config.stop_watching()
        self._config = None
        self._watch_callback = None

    @property
    def current(self) -> Optional[Config]:
        return self._config

    def load(self) -> Config:
        with self._lock:
            if self._config is None:
                self._config = self._get_loader().load()
            return self._config

    def reload(self) -> Config:
        with self._lock:
            fresh = self._get_loader().load()
            previous = self._config
            self._config = fresh
            if previous is not None and self._watch_callback is not None:
                # keep watching across reloads
                previous.stop_watching()
                fresh.watch(self._watch_callback)
            return fresh

    def watch(self, callback: ChangeCallback) -> Config:
        with self._lock:
            config = self.load()
            self._watch_callback = callback
            config.watch(callback)
            return config

    def get_config_path(self) -> str:
        with self._lock:
            loader = self._get_loader()
        return loader.get_config_path()


_registry = _ConfigRegistry()


def configure(settings: Optional[LoaderSettings] = None, *, loader: Optional[ConfigLoader] = None) -> None:
    """Set how the process-wide loader resolves and binds configuration. Drops any cached Config."""
    _registry.configure(loader or ConfigLoader(settings))


def load() -> Config:
    """
    Return the process-wide Config, loading it on first use.

    Later calls return the same instance without touching the file. Raises FatalConfigError
    if the file cannot be read; the process entry point should exit on it.
    """
    return _registry.load()


def reload() -> Config:
    """Read the config file again and replace the process-wide Config."""
    return _registry.reload()


def watch(callback: Optional[ChangeCallback] = None) -> Config:
    """
    Watch the process-wide config file for changes.

    On each change the file is re-read into the current Config and `callback` runs on the
    watcher thread. The default callback only logs. The cached Config object is not replaced.
    """
    return _registry.watch(callback or _log_config_change)


def get_config_path() -> str:
    return _registry.get_config_path()


def current() -> Optional[Config]:
    return _registry.current


def reset() -> None:
    """Forget the process-wide Config and loader settings. Mostly useful in tests."""
    _registry.reset()
