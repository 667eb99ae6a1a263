"""
Logging setup for GearGuard.

Service code logs with ``extra={"user_id": ..., "request_ref": ...}`` so each
line can be tied back to the acting user and the maintenance request it
touched; the timing middleware adds the HTTP fields. Production emits one JSON
object per line, development and tests a short coloured line.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# HTTP fields come from middleware/timing.py; user_id and request_ref from services.
_EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
    "user_id",
    "request_ref",
)

_NOISY_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in _EXTRA_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamped from the record itself."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            **_extras(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``12:00:01 INFO     gearguard.x: message #42 (user=7) [12ms]``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        extras = _extras(record)
        suffix = ""
        if "request_ref" in extras:
            suffix += f" #{extras['request_ref']}"
        if "user_id" in extras:
            suffix += f" (user={extras['user_id']})"
        if "duration_ms" in extras:
            suffix += f" [{extras['duration_ms']:.0f}ms]"

        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}{suffix}"
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    LOG_LEVEL overrides the level (INFO in production, DEBUG otherwise).
    Called once per app, so tests that build several apps keep one handler.
    """
    testing = app.config.get("TESTING", False)
    production = not (testing or app.config.get("DEBUG", False))

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured: level=%s json=%s", level_name, production)
