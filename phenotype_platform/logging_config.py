"""Logging configuration for the phenotype platform backend.

Two output modes:
- Human-readable (dev): timestamped, leveled, module-attributed lines.
- JSON (production): one structured object per line, suitable for the
  hosting platform's log drain.

Usage:
    from phenotype_platform.logging_config import setup_logging

    setup_logging()                         # INFO, human-readable
    setup_logging(level="DEBUG")            # DEBUG, human-readable
    setup_logging(json_format=True)         # INFO, JSON lines
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else was passed via ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

# Third-party loggers that are chatty at INFO.
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiohttp.access", "uvicorn.access")


class _JSONFormatter(logging.Formatter):
    """Emit each log record as a single JSON line.

    Fields: timestamp (ISO-8601 UTC), severity, module, message, any
    ``extra=`` attributes, and the formatted exception when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "severity": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


_HUMAN_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
) -> None:
    """Configure the root logger with a single stderr handler.

    Idempotent: existing root handlers are removed first, so repeated calls
    (app factory in tests, uvicorn reload) don't duplicate output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, emit JSON lines instead of human-readable.

    Raises:
        ValueError: If *level* is not a recognised log level name.
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)

    if json_format:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_HUMAN_FMT))

    root.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
