from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from appconfig.config import (
    Config,
    ConfigWriteError,
    FatalConfigError,
    LoaderSettings,
    LoggingSettings,
    configure,
    get_config_path,
    load,
    watch,
)
from appconfig.logging import init_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="appconfig", description="Inspect and edit the application config")
    parser.add_argument(
        "--env-prefix",
        default=None,
        help="Environment variable prefix (default: value of ENV_PREFIX)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: path
    subparsers.add_parser("path", help="Print the config file path that would be loaded")

    # Command: get
    get_parser = subparsers.add_parser("get", help="Print a single value")
    get_parser.add_argument("key")

    # Command: show
    subparsers.add_parser("show", help="Print all settings as JSON")

    # Command: set
    set_parser = subparsers.add_parser("set", help="Set a value and write the config file")
    set_parser.add_argument("key")
    set_parser.add_argument("value", help="JSON literal; anything that does not parse is stored as a string")

    # Command: watch
    watch_parser = subparsers.add_parser("watch", help="Log changes to the config file")
    watch_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Watch for N seconds then exit (useful for smoke testing).",
    )

    return parser


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _init_logging_from(config: Config) -> None:
    section = config.get_string_map("logging")
    try:
        settings = LoggingSettings.model_validate(section)
    except ValidationError as e:
        init_logging(LoggingSettings())
        logger.warning("config.logging_section_invalid path=%s error=%s", config.path, e)
        return
    init_logging(settings)


def _run(args: argparse.Namespace) -> int:
    if args.env_prefix is not None:
        configure(LoaderSettings(env_prefix=args.env_prefix))

    if args.command == "path":
        print(get_config_path())
        return 0

    config = load()
    _init_logging_from(config)

    if args.command == "get":
        print(_format_value(config.get(args.key)))
    elif args.command == "show":
        print(json.dumps(config.all_settings(), indent=2, ensure_ascii=False))
    elif args.command == "set":
        config.save(args.key, _parse_value(args.value))
        logger.info("config.value_saved key=%s path=%s", args.key, config.path)
    elif args.command == "watch":
        watch()
        started = time.monotonic()
        while args.run_seconds is None or time.monotonic() - started < args.run_seconds:
            time.sleep(0.2)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        code = _run(args)
    except FatalConfigError as e:
        # A missing or broken config is not recoverable.
        sys.exit(f"appconfig: fatal: {e}")
    except ConfigWriteError as e:
        print(f"appconfig: {e}", file=sys.stderr)
        code = 2
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
