"""
Structured logging for the MCP server runtime.

This module provides JSON-formatted structured logging on top of the standard
``logging`` package.

Features:
- JSON-formatted log output for machine-readable logs
- Consistent field structure across all log entries
- Extra fields passed through ``extra=`` appear as top-level keys
- Logs go to stderr by default: stdout carries the stdio protocol stream
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from mcp_serverkit.config import LoggingConfig

ROOT_LOGGER_NAME = "mcp_serverkit"

# Default log format for plain-text output
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord has; anything else came from ``extra``
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """
    A logging formatter that outputs log records as JSON objects.

    Each log record is formatted as a JSON object with consistent fields:
    - timestamp: ISO 8601 formatted timestamp in UTC
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - logger: Logger name
    - message: Log message
    - exception: Formatted traceback, when present
    - Additional fields from the record's extra dict
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or value is None:
                continue
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _resolve_stream(stream: str | TextIO) -> TextIO:
    if not isinstance(stream, str):
        return stream
    if stream == "stdout":
        return sys.stdout
    return sys.stderr


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    level: str = "INFO",
    json_format: bool = True,
    stream: str | TextIO = "stderr",
) -> logging.Logger:
    """
    Configure the ``mcp_serverkit`` package logger.

    Args:
        config: Optional LoggingConfig. If provided, overrides other parameters.
        level: Log level if no config is provided.
        json_format: Whether to use JSON formatting.
        stream: "stderr", "stdout", or an open text stream.

    Returns:
        The package logger.

    Example:
        >>> logger = setup_logging(level="DEBUG")
        >>> logger.info("Server started", extra={"transport": "stdio"})
    """
    if config is not None:
        level = config.level
        json_format = config.json_format
        stream = config.stream

    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(_resolve_stream(stream))
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate logs
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module, under the ``mcp_serverkit`` hierarchy.

    Args:
        name: Typically ``__name__``. The "mcp_serverkit." prefix is added if
            missing.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Module initialized")
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    return logging.getLogger(name)
