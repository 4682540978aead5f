"""Structured JSON logging for the Enclosure media core."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

# Third-party loggers that are chatty at INFO during batch uploads
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class JSONFormatter(logging.Formatter):
    """One JSON object per line; batch context under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """Attach a fixed context dict (batch id, conversation key) to every record."""

    def process(self, msg: Any, kwargs: dict) -> tuple[Any, dict]:
        extra = kwargs.setdefault("extra", {})
        merged = dict(self.extra or {})
        merged.update(extra.get("context", {}))
        extra["context"] = merged
        return msg, kwargs


def _handlers(log_file: str, console: bool) -> dict[str, dict]:
    handlers = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
            "formatter": "json",
            "encoding": "utf-8",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }
    return handlers


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console: bool = True,
) -> None:
    """
    Route all logging through JSON handlers.

    Args:
        log_level: Root level; falls back to LOG_LEVEL, then INFO.
        log_file: Rotating log file; falls back to LOG_FILE, then 04_logs/app.log.
        console: Also log to stdout.
    """
    level = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_file = log_file or os.getenv("LOG_FILE") or str(DEFAULT_LOG_PATH)
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handlers = _handlers(log_file, console)
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": JSONFormatter}},
            "handlers": handlers,
            "loggers": {name: {"level": "WARNING"} for name in _NOISY_LOGGERS},
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_context_logger(name: str, **context: Any) -> ContextAdapter:
    """Get a logger that stamps ``context`` onto every record it emits."""
    return ContextAdapter(logging.getLogger(name), context)
