"""
Logging setup: the packaged `logging.yaml`, adjusted per run from settings.

- `app.log_level` (`HALALMAP_LOG_LEVEL`) sets the root level and the handler thresholds.
- `database.echo` raises `sqlalchemy.engine` to INFO. The engine is created without SQLAlchemy's
  own `echo` handler, so statements are written once, by the handlers configured here.
"""

from __future__ import annotations

import copy
import logging
import logging.config
from typing import Any

from halalmap.config.settings import Settings, get_logging_config, get_settings


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """`dictConfig` payload for `settings`; the cached YAML is never mutated."""
    config = copy.deepcopy(get_logging_config())
    level = settings.app.log_level.upper()
    handler_level = level

    if settings.database.echo:
        config.setdefault("loggers", {}).setdefault("sqlalchemy.engine", {})["level"] = "INFO"
        if logging.getLevelName(level) > logging.INFO:
            handler_level = "INFO"

    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        handler["level"] = handler_level
    return config


def configure_logging(settings: Settings | None = None) -> None:
    logging.config.dictConfig(build_logging_config(settings or get_settings()))
