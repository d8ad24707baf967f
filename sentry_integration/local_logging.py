# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Local stdout log sink with structured JSON output."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .severity import TRACE

DEFAULT_LOG_LEVEL = "INFO"

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

logging.addLevelName(TRACE, "TRACE")


def resolve_level(level: str | None = None) -> int:
    """Resolve the minimum level for the local sink.

    An explicit value wins, then the LOG_LEVEL environment variable, then INFO.

    Raises:
        ValueError: If the level name is not recognized
    """
    name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    if name not in _LEVEL_MAP:
        raise ValueError(f"Invalid log level: {name}. Must be one of {list(_LEVEL_MAP.keys())}")
    return _LEVEL_MAP[name]


class JsonFormatter(logging.Formatter):
    """Formats records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "file": record.pathname,
            "line": record.lineno,
        }

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}
        if extra:
            log_entry["extra"] = extra

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        try:
            return json.dumps(log_entry, default=str)
        except (TypeError, ValueError) as e:
            # Fallback to plain text if JSON serialization fails
            return f"{record.levelname}: {record.getMessage()} (JSON serialization failed: {e})"


def create_stdout_handler(level: str | None = None) -> logging.Handler:
    """Create the local stdout handler.

    Args:
        level: Minimum level name. Defaults to LOG_LEVEL env or INFO.

    Returns:
        A handler writing JSON lines to stdout
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolve_level(level))
    handler.setFormatter(JsonFormatter())
    return handler
