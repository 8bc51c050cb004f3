"""Structured logging for lin-cli.

Records go to stderr so tables and issue details printed on stdout stay
pipe-friendly. Keyword arguments passed to the helpers become record fields,
which the JSON formatter emits as top-level keys.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .errors import redact

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}
_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StructuredLogger:
    """Thin wrapper that attaches keyword fields to stdlib log records."""

    def __init__(
        self, name: str = "lincli", json_logging: bool = False, level: str = "WARNING"
    ) -> None:
        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
        for existing in list(self._logger.handlers):
            self._logger.removeHandler(existing)
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter() if json_logging else logging.Formatter(_PLAIN_FORMAT))
        self._logger.addHandler(handler)
        self._logger.propagate = False

    @property
    def level(self) -> int:
        return self._logger.level

    def log_operation(self, operation: str, **fields: Any) -> None:
        self._logger.info("%s", operation, extra={"operation": operation, **fields})

    def log_performance(self, operation: str, duration_ms: float, **fields: Any) -> None:
        self._logger.info(
            "%s took %.2fms",
            operation,
            duration_ms,
            extra={"operation": operation, "duration_ms": round(duration_ms, 2), **fields},
        )

    def log_error(self, message: str, error: str | None = None, **fields: Any) -> None:
        if error:
            fields["error"] = redact(error)
        self._logger.error(message, extra=fields)

    def debug(self, message: str, **fields: Any) -> None:
        self._logger.debug(message, extra=fields)

    def info(self, message: str, **fields: Any) -> None:
        self._logger.info(message, extra=fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._logger.warning(message, extra=fields)


_GLOBAL: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    if _GLOBAL is None:
        _GLOBAL = StructuredLogger()
    return _GLOBAL


def configure_logging(json_logging: bool = False, level: str = "WARNING") -> StructuredLogger:
    global _GLOBAL  # noqa: PLW0603
    _GLOBAL = StructuredLogger(json_logging=json_logging, level=level)
    return _GLOBAL


__all__ = ["JSONFormatter", "StructuredLogger", "configure_logging", "get_logger"]
