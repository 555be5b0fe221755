"""Logging configuration for the sales service.

structlog renders every event and the standard library owns the handlers.
Console output is always on. Rotating files are written only when a log
directory is given, either directly or through ``LOG_DIR``.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

LEVEL_BY_ENVIRONMENT = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Loggers that are chatty at DEBUG and rarely useful when tracing an order.
QUIET_LOGGERS = ("uvicorn.access", "asyncio", "httpx")

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def _environment() -> str:
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    """``LOG_LEVEL`` if set, otherwise the default for the running environment."""
    return os.getenv("LOG_LEVEL", LEVEL_BY_ENVIRONMENT.get(_environment(), "INFO"))


def _rotating_handler(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | None = None) -> None:
    level = get_log_level()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    root.addHandler(console)

    log_dir = log_dir or os.getenv("LOG_DIR")
    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        root.addHandler(_rotating_handler(directory / "sales.log", level))
        root.addHandler(_rotating_handler(directory / "sales_error.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_structlog() -> None:
    """JSON lines in production and staging, coloured console output elsewhere."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if _environment() in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | None = None) -> None:
    setup_stdlib_logging(log_dir)
    setup_structlog()


def add_context(**kwargs: Any) -> None:
    """Bind values (request path, order id) onto every later log event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
