"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Iterable

from app.core.context import get_request_id

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s"

# Chatty at INFO: one line per outbound call to the model API.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


class RequestIdFilter(logging.Filter):
    """Stamp the current request id (or "-") on every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    debug: bool = False,
    quiet_loggers: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """
    Configure application logging once at startup.

    ``debug`` drops the ``app`` namespace to DEBUG without touching third-party
    loggers; ``quiet_loggers`` are held at WARNING regardless of ``log_level``.
    """
    if getattr(configure_logging, "_configured", False):
        return

    loggers = {name: {"level": "WARNING"} for name in quiet_loggers}
    loggers["app"] = {"level": "DEBUG" if debug else log_level}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "filters": {"request_id": {"()": "app.core.logging.RequestIdFilter"}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_id"],
                }
            },
            "loggers": loggers,
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    logging.getLogger(__name__).debug("Logging configured (level=%s, debug=%s)", log_level, debug)
    setattr(configure_logging, "_configured", True)
