from __future__ import annotations

import logging
import os

import appconfig
from appconfig.config import LoggingSettings
from appconfig.logging import init_logging


def main() -> None:
    # Run from this directory so config.dev.json is picked up.
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    config = appconfig.load()
    init_logging(LoggingSettings.model_validate(config.get_string_map("logging")))

    logger = logging.getLogger("smoke")
    logger.info("Config loaded path=%s", config.path)
    logger.info("foo=%s", config.get_string("foo"))


if __name__ == "__main__":
    main()
