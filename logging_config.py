from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

CONTEXT_KEYS = (
    "job",
    "trigger",
    "station_id",
    "container",
    "record_count",
    "status_code",
    "schema_result",
    "reason",
    "duration_ms",
)

# Third-party loggers that log every request or job run at INFO.
_QUIET_LOGGERS = ("apscheduler", "httpx", "httpcore")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends ``key=value`` pairs taken from the record's ``extra`` fields.

    Timestamps are rendered in UTC. Values containing whitespace are quoted so
    a log line stays splittable on spaces.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(
            CONTEXT_KEYS if context_keys is None else context_keys
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={self._render(value)}"
            for key, value in (
                (key, getattr(record, key, None)) for key in self._context_keys
            )
            if value is not None
        )
        return f"{message} | {context}" if context else message

    @staticmethod
    def _render(value: Any) -> str:
        if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
            value = value.value
        text = str(value)
        if not text or any(char.isspace() for char in text):
            return '"' + text.replace('"', '\\"') + '"'
        return text


def build_logging_config(level: str | int) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "context_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the console handler once per process."""
    global _configured
    if _configured:
        return

    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
