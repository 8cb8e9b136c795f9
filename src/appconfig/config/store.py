from __future__ import annotations

import json
import logging
import math
import os
import threading
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Sequence, Tuple

from appconfig.config.errors import ConfigFileError
from appconfig.config.interfaces import ChangeCallback
from appconfig.config.models import FileChangeEvent
from appconfig.config.watcher import FileWatcher

logger = logging.getLogger(__name__)

_MISSING = object()

_TRUE_STRINGS = frozenset({"1", "t", "true", "y", "yes", "on"})


def _lower_keys(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(v) for v in value]
    return value


def _search(mapping: Mapping[str, Any], path: Sequence[str]) -> Any:
    cur: Any = mapping
    for segment in path:
        if not isinstance(cur, Mapping) or segment not in cur:
            return _MISSING
        cur = cur[segment]
    return cur


def _deep_set(mapping: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    cur = mapping
    for segment in path[:-1]:
        next_value = cur.get(segment)
        if not isinstance(next_value, dict):
            next_value = {}
            cur[segment] = next_value
        cur = next_value
    cur[path[-1]] = value


def _deep_delete(mapping: MutableMapping[str, Any], path: Sequence[str]) -> Any:
    parent = _search(mapping, path[:-1]) if len(path) > 1 else mapping
    if not isinstance(parent, dict) or path[-1] not in parent:
        return _MISSING
    return parent.pop(path[-1])


def _leaf_keys(mapping: Mapping[str, Any], delimiter: str, prefix: str = "") -> List[str]:
    keys: List[str] = []
    for k, v in mapping.items():
        full = f"{prefix}{delimiter}{k}" if prefix else k
        if isinstance(v, Mapping) and v:
            keys.extend(_leaf_keys(v, delimiter, full))
        else:
            keys.append(full)
    return keys


def to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value)
    return str(value)


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if not isinstance(value, str):
        return 0
    text = value.strip()
    for base in (10, 0):
        try:
            return int(text, base)
        except ValueError:
            pass
    try:
        number = float(text)
    except ValueError:
        return 0
    # "3.0" is accepted, "3.5" is not
    return int(number) if number.is_integer() else 0


def to_float(value: Any) -> float:
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def to_string_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [to_string(v) for v in value]
    if isinstance(value, str):
        return value.split()
    return []


def to_string_map(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


class ConfigStore:
    """
    Layered key/value store backing a Config.

    Lookup order: explicit set() overrides, environment variables (once automatic_env() is
    on), the config file, defaults. Keys are case-insensitive; nested keys use the delimiter.
    """

    def __init__(
        self,
        *,
        key_delimiter: str = ".",
        environ: Optional[Mapping[str, str]] = None,
        watch_interval_seconds: float = 0.5,
    ) -> None:
        self._delimiter = key_delimiter
        self._environ = environ
        self._watch_interval = watch_interval_seconds

        self._defaults: Dict[str, Any] = {}
        self._config: Dict[str, Any] = {}
        self._overrides: Dict[str, Any] = {}
        self._aliases: Dict[str, str] = {}

        self._automatic_env = False
        self._env_prefix = ""
        self._env_key_replacer: Optional[Tuple[str, str]] = None
        self._type_by_default = False

        self._config_file: Optional[str] = None
        self._on_change: Optional[ChangeCallback] = None
        self._watcher: Optional[FileWatcher] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # keys and aliases

    def _path(self, key: str) -> List[str]:
        return key.lower().split(self._delimiter)

    def _real_key(self, key: str) -> str:
        key = key.lower()
        seen = set()
        while key in self._aliases and key not in seen:
            seen.add(key)
            key = self._aliases[key]
        return key

    def register_alias(self, alias: str, key: str) -> None:
        alias = alias.lower()
        key = key.lower()
        if alias == key or self._real_key(key) == alias:
            logger.warning("config.alias_cycle_ignored alias=%s key=%s", alias, key)
            return
        with self._lock:
            # Values stored under the alias name move to the real key.
            for layer in (self._overrides, self._config, self._defaults):
                moved = _deep_delete(layer, self._path(alias))
                if moved is not _MISSING:
                    _deep_set(layer, self._path(key), moved)
            self._aliases[alias] = key

    # ------------------------------------------------------------------
    # environment binding

    def automatic_env(self) -> None:
        self._automatic_env = True

    def set_env_prefix(self, prefix: str) -> None:
        self._env_prefix = prefix.rstrip("_")

    @property
    def env_prefix(self) -> str:
        return self._env_prefix

    def set_env_key_replacer(self, old: str, new: str) -> None:
        self._env_key_replacer = (old, new)

    def set_type_by_default_value(self, enabled: bool) -> None:
        self._type_by_default = enabled

    def env_var_name(self, key: str) -> str:
        name = key.lower()
        if self._env_key_replacer is not None:
            name = name.replace(*self._env_key_replacer)
        if self._env_prefix:
            name = f"{self._env_prefix}_{name}"
        return name.upper()

    def _env_names(self, key: str) -> List[str]:
        names = [self.env_var_name(key)]
        for alias in sorted(self._aliases):
            if self._real_key(alias) == key:
                names.append(self.env_var_name(alias))
        return names

    def _lookup_env(self, key: str) -> Any:
        environ = os.environ if self._environ is None else self._environ
        for name in self._env_names(key):
            value = environ.get(name)
            # exported-but-empty variables count as unset
            if value:
                return self._coerce_env_value(key, value)
        return _MISSING

    def _coerce_env_value(self, key: str, value: str) -> Any:
        if not self._type_by_default:
            return value
        default = _search(self._defaults, self._path(key))
        if default is _MISSING or default is None:
            return value
        if isinstance(default, bool):
            return to_bool(value)
        if isinstance(default, int):
            return to_int(value)
        if isinstance(default, float):
            return to_float(value)
        if isinstance(default, (list, tuple)):
            return to_string_list(value)
        return value

    # ------------------------------------------------------------------
    # reads and writes

    def _find(self, key: str, *, include_defaults: bool = True) -> Any:
        key = self._real_key(key)
        path = self._path(key)

        value = _search(self._overrides, path)
        if value is not _MISSING:
            return value
        if self._automatic_env:
            value = self._lookup_env(key)
            if value is not _MISSING:
                return value
        value = _search(self._config, path)
        if value is _MISSING and len(path) > 1:
            # tolerate literal dotted keys in the file, e.g. {"a.b": 1}
            value = self._config.get(key, _MISSING)
        if value is not _MISSING:
            return value
        if include_defaults:
            return _search(self._defaults, path)
        return _MISSING

    def get(self, key: str) -> Any:
        value = self._find(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            _deep_set(self._overrides, self._path(self._real_key(key)), _lower_keys(value))

    def set_default(self, key: str, value: Any) -> None:
        with self._lock:
            _deep_set(self._defaults, self._path(self._real_key(key)), _lower_keys(value))

    def is_set(self, key: str) -> bool:
        return self._find(key, include_defaults=False) is not _MISSING

    def in_config(self, key: str) -> bool:
        return _search(self._config, self._path(self._real_key(key))) is not _MISSING

    def all_keys(self) -> List[str]:
        keys = set()
        for layer in (self._defaults, self._config, self._overrides):
            keys.update(_leaf_keys(layer, self._delimiter))
        return sorted(keys)

    def all_settings(self) -> Dict[str, Any]:
        settings: Dict[str, Any] = {}
        for key in self.all_keys():
            value = self.get(key)
            if value is None:
                continue
            _deep_set(settings, self._path(key), value)
        return settings

    def get_string(self, key: str) -> str:
        return to_string(self.get(key))

    def get_int(self, key: str) -> int:
        return to_int(self.get(key))

    def get_float(self, key: str) -> float:
        return to_float(self.get(key))

    def get_bool(self, key: str) -> bool:
        return to_bool(self.get(key))

    def get_string_list(self, key: str) -> List[str]:
        return to_string_list(self.get(key))

    def get_string_map(self, key: str) -> Dict[str, Any]:
        return to_string_map(self.get(key))

    # ------------------------------------------------------------------
    # file

    def set_config_file(self, path: str) -> None:
        self._config_file = path

    def config_file_used(self) -> Optional[str]:
        return self._config_file

    def _require_config_file(self) -> str:
        if not self._config_file:
            raise ConfigFileError("no config file configured")
        return self._config_file

    def read_config(self) -> None:
        path = self._require_config_file()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ConfigFileError(f"cannot open config file {path}: {e}", path=path) from e
        except ValueError as e:
            raise ConfigFileError(f"invalid JSON in config file {path}: {e}", path=path) from e
        if not isinstance(data, dict):
            raise ConfigFileError(
                f"config file {path} must contain a JSON object, got {type(data).__name__}",
                path=path,
            )
        with self._lock:
            self._config = _lower_keys(data)
        logger.debug("config.file_read path=%s keys=%d", path, len(data))

    def write_config(self) -> None:
        path = self._require_config_file()
        try:
            text = json.dumps(self.all_settings(), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ConfigFileError(f"cannot encode settings for {path}: {e}", path=path) from e
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(text + "\n")
        except OSError as e:
            raise ConfigFileError(f"cannot write config file {path}: {e}", path=path) from e
        logger.info("config.file_written path=%s", path)

    # ------------------------------------------------------------------
    # change notification

    def on_config_change(self, callback: ChangeCallback) -> None:
        self._on_change = callback

    def watch_config(self) -> None:
        with self._lock:
            if self._watcher is not None:
                return
            path = self._require_config_file()
            self._watcher = FileWatcher(
                path,
                self._handle_file_change,
                interval_seconds=self._watch_interval,
            )
            watcher = self._watcher
        watcher.start()

    def stop_watching(self) -> None:
        with self._lock:
            watcher = self._watcher
            self._watcher = None
        if watcher is not None:
            watcher.stop()

    def _handle_file_change(self, event: FileChangeEvent) -> None:
        try:
            self.read_config()
        except ConfigFileError as e:
            logger.error("config.reread_failed path=%s error=%s", event.path, e)
        callback = self._on_change
        if callback is not None:
            callback(event)
