"""
Log output for the API and the CLI demo.

Modules log through `logging.getLogger(__name__)`. Records about one
vehicle pass `extra={"vin": ...}` so the VIN lands in its own JSON key
(or a `[vin=...]` tag in text mode) instead of being parsed out of the
message. Anything richer goes in `extra={"extra_data": {...}}`.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG.
_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, vin, data."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        vin = getattr(record, "vin", None)
        if vin:
            entry["vin"] = vin
        if hasattr(record, "extra_data"):
            entry["data"] = record.extra_data
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for the CLI, with the VIN tag appended when present."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-8s [%(name)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        vin = getattr(record, "vin", None)
        return f"{line} [vin={vin}]" if vin else line


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Replace root handlers with one stdout handler in the chosen format."""
    resolved = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING)
