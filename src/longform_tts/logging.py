"""JSON log lines carrying session, epoch and segment context.

Context travels through ``extra=``; only the keys in
:data:`CONTEXT_FIELDS` are copied into the emitted object, and keys a
record does not carry are left out rather than written as ``null``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Any

CONTEXT_FIELDS: tuple[str, ...] = (
    "session_id",
    "epoch",
    "segment_index",
    "segment_count",
    "voice_id",
    "event",
    "error_code",
    "metrics",
)

QUIET_LIBRARIES: tuple[str, ...] = ("aiohttp", "httpx", "httpcore", "urllib3")

# Marks the handler installed here so repeat setup replaces only it
_HANDLER_NAME = "longform_tts.json"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", stream: IO[str] | None = None) -> logging.Handler:
    """Install the JSON handler on the root logger and return it.

    Handlers installed by others (an embedding app, a test harness) are
    left in place; calling this again swaps out only the previous JSON
    handler.  Unknown level names fall back to INFO.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)

    for lib in QUIET_LIBRARIES:
        logging.getLogger(lib).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"longform_tts.{name}")
