from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoaderSettings(BaseModel):
    """
    How the loader finds the config file and binds environment variables.

    When `env_prefix` is None the prefix is taken from the `env_prefix` key at load time,
    which at that point can only come from the unprefixed ENV_PREFIX environment variable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    env_prefix: Optional[str] = None
    key_delimiter: str = Field(default=".", min_length=1)
    env_key_replacement: str = "_"
    default_env: str = Field(default="dev", min_length=1)
    file_name_template: str = "config.{env}.json"
    dotenv_path: Optional[str] = ".env"
    watch_interval_seconds: float = Field(default=0.5, gt=0)


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 5


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Optional[str] = None
    rotation: FileRotationSettings = Field(default_factory=FileRotationSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    file: FileLoggingSettings = Field(default_factory=FileLoggingSettings)

    @field_validator("level")
    @classmethod
    def check_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


ChangeKind = Literal["modified", "created"]


@dataclass(frozen=True, slots=True)
class FileChangeEvent:
    path: str
    kind: ChangeKind
