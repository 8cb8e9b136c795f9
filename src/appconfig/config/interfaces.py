from __future__ import annotations

from typing import Any, Callable, Dict, List, Protocol

from appconfig.config.models import FileChangeEvent

ChangeCallback = Callable[[FileChangeEvent], None]


class KeyValueStore(Protocol):
    """
    Hierarchical key/value store a Config delegates to.

    Keys are case-insensitive and may be nested with a delimiter. Values resolve in this order:
    explicit overrides, environment variables, the config file, defaults.
    """

    def set_default(self, key: str, value: Any) -> None:
        ...

    def register_alias(self, alias: str, key: str) -> None:
        ...

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def is_set(self, key: str) -> bool:
        ...

    def in_config(self, key: str) -> bool:
        ...

    def all_keys(self) -> List[str]:
        ...

    def all_settings(self) -> Dict[str, Any]:
        ...

    def get_string(self, key: str) -> str:
        ...

    def get_int(self, key: str) -> int:
        ...

    def get_float(self, key: str) -> float:
        ...

    def get_bool(self, key: str) -> bool:
        ...

    def get_string_list(self, key: str) -> List[str]:
        ...

    def get_string_map(self, key: str) -> Dict[str, Any]:
        ...

    def read_config(self) -> None:
        ...

    def write_config(self) -> None:
        ...

    def on_config_change(self, callback: ChangeCallback) -> None:
        ...

    def watch_config(self) -> None:
        ...

    def stop_watching(self) -> None:
        ...
