"""
Logging setup for pg_transfer.

Configured once by the CLI. Components never reach for a global logger:
they take a ``logging.Logger`` argument and fall back to a named child of
``pg_transfer``. Structured metadata is passed as ``extra={"meta": {...}}``.

Formats:
- rich: rich.logging.RichHandler (interactive terminals)
- json: one JSON object per line
- plain: [ts] [LEVEL] [logger] message {meta}
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .protocol.errors import ConfigurationError

ROOT_LOGGER = "pg_transfer"

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def resolve_level(level: str) -> int:
    """Map a level name to a logging level."""
    try:
        return LEVELS[level.lower()]
    except (KeyError, AttributeError):
        raise ConfigurationError(f"Unknown log level: {level}") from None


def get_logger(component: str, logger: Optional[logging.Logger] = None) -> logging.Logger:
    """Return the injected logger, or the component's child of the root logger."""
    if logger is not None:
        return logger
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


def _meta(record: logging.LogRecord) -> Dict[str, Any]:
    meta = getattr(record, "meta", None)
    return meta if isinstance(meta, dict) else {}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        meta = _meta(record)
        if meta:
            payload["meta"] = meta
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created))
        line = f"[{ts}] [{record.levelname}] [{record.name}] {record.getMessage()}"
        meta = _meta(record)
        if meta:
            line += " " + json.dumps(meta, ensure_ascii=False, default=str)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class RichMetaFormatter(logging.Formatter):
    """Message plus metadata; RichHandler renders time and level itself."""

    def format(self, record: logging.LogRecord) -> str:
        message = escape(record.getMessage())
        meta = _meta(record)
        if meta:
            pairs = escape(" ".join(f"{k}={v}" for k, v in meta.items()))
            message = f"{message} [dim]{pairs}[/]"
        return message


def setup_logging(
    level: str = "info",
    fmt: str = "rich",
    file: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure the pg_transfer logger tree.

    Args:
        level: error, warn, info or debug
        fmt: rich, json or plain
        file: Optional log file (always written as JSON)
        console: Console for the rich handler (defaults to stderr)

    Returns:
        The configured root logger of the package
    """
    log_level = resolve_level(level)

    handlers: List[logging.Handler] = []
    if fmt == "rich":
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            markup=True,
            rich_tracebacks=True,
        )
        handler.setFormatter(RichMetaFormatter())
        handlers.append(handler)
    elif fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        handlers.append(handler)
    elif fmt == "plain":
        handler = logging.StreamHandler()
        handler.setFormatter(PlainFormatter())
        handlers.append(handler)
    else:
        raise ConfigurationError(f"Unknown log format: {fmt}")

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(JsonFormatter())
        handlers.append(file_handler)

    logger = logging.getLogger(ROOT_LOGGER)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(log_level)
    logger.propagate = False

    return logger
