"""
Logging setup for the CLI and the web app.

Handlers and formatters come from the packaged `config/logging.yaml`. Levels come
from settings: `app.log_level` (or `NEARNEEDS_LOG_LEVEL`) drives the `nearneeds`
loggers, and `app.quiet_loggers` caps chatty third-party loggers such as httpx,
which otherwise logs every backend poll at INFO.
"""

from __future__ import annotations

import copy
import logging.config

from nearneeds.config.settings import get_logging_config, get_settings

PACKAGE_LOGGER = "nearneeds"


def configure_logging(level: str | None = None) -> str:
    """Apply the logging config; returns the effective `nearneeds` level name."""
    app = get_settings().app
    effective = (level or app.log_level).upper()

    config = copy.deepcopy(get_logging_config())
    loggers = config.setdefault("loggers", {})
    loggers[PACKAGE_LOGGER] = {"level": effective}
    for name, quiet_level in app.quiet_loggers.items():
        loggers[name] = {"level": quiet_level.upper()}

    # Handlers must let package DEBUG records through when asked for.
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = "NOTSET"

    logging.config.dictConfig(config)
    return effective
