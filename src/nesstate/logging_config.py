from __future__ import annotations

import logging
from typing import Optional

from .settings import LoggingSettings


def configure_logging(settings: Optional[LoggingSettings] = None, debug: bool = False) -> None:
    """Configure the root logger from the `logging` section of the settings.

    `debug` forces DEBUG regardless of the configured level. Library modules
    only create loggers; the command line entry point calls this once.
    """
    settings = settings or LoggingSettings()
    level = logging.DEBUG if debug else logging.getLevelName(settings.level)
    logging.basicConfig(level=level, format=settings.format)
