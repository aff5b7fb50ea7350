from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "roadtsp"
LEVEL_ENV_VAR = "ROADTSP_LOG_LEVEL"


def _parse_level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Return the package logger, attaching JSON handlers on first use."""
    logger = logging.getLogger(LOGGER_NAME)

    # Prevent duplicate handlers when called from several entry points
    if getattr(logger, "_configured", False):
        if level is not None:
            logger.setLevel(_parse_level(level))
        return logger

    logger.setLevel(_parse_level(level or os.environ.get(LEVEL_ENV_VAR, "INFO")))
    logger.propagate = False

    formatter = jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def reset_logger() -> None:
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger._configured = False  # type: ignore[attr-defined]


def log_event(event: str, level: int = logging.INFO, **fields: Any) -> None:
    # Structured: event is message + a top-level key
    get_logger().log(level, event, extra={"event": event, **fields})


__all__ = ["LOGGER_NAME", "get_logger", "log_event", "reset_logger"]
