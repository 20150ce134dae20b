"""
Logging helpers for cldsdk.

All loggers live under the ``cldsdk`` namespace. The library never
configures the root logger; ``setup_logging()`` installs one handler on
the package logger, plain text or JSON lines.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER_NAME = "cldsdk"

_configured = False


class JsonFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the cldsdk namespace.

    Args:
        name: Usually ``__name__`` of the calling module

    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def setup_logging(
    level: str | None = None,
    json_output: bool | None = None,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Log level name; defaults to the ``log_level`` setting
        json_output: Emit JSON lines; defaults to the ``log_json`` setting
        force: Reinstall the handler even if already configured

    Returns:
        The package logger
    """
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured and not force:
        return logger

    if level is None or json_output is None:
        from cldsdk.config import get_settings

        settings = get_settings()
        level = level or settings.log_level
        json_output = settings.log_json if json_output is None else json_output

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    _configured = True
    return logger


__all__ = ["get_logger", "setup_logging", "JsonFormatter", "ROOT_LOGGER_NAME"]
