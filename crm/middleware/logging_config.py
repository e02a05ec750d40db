"""
Logging setup for CRM Hub.

One stderr handler on the root logger. Records emitted inside a request may
carry request tags (request id, client id, data source mode, timing); both
formatters render them.

    LOG_FORMAT  "json" | "readable"  (default: json outside dev/test)
    LOG_LEVEL   standard level name  (default: DEBUG in dev/test, INFO otherwise)
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

SERVICE_NAME = "crm-hub"

# Request tags copied from the LogRecord when set via ``extra=``
_EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
    "client_id",
    "data_source",
)

_QUIET_LOGGERS = ("urllib3", "requests", "werkzeug", "sqlalchemy.engine")


def _request_tags(record):
    return {key: getattr(record, key) for key in _EXTRA_FIELDS if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, stamped with the record's own creation time."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        entry.update(_request_tags(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Single-line dev format; request tags trail the message in brackets."""

    LEVEL_COLORS = {
        "DEBUG": "\033[2m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<7}"
        if self.use_color:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        tags = _request_tags(record)
        suffix = []
        if "client_id" in tags:
            suffix.append(f"client={tags['client_id']}")
        if "data_source" in tags:
            suffix.append(f"source={tags['data_source']}")
        if "duration_ms" in tags:
            suffix.append(f"{tags['duration_ms']:.0f}ms")

        line = f"{ts} {level} {record.name}: {record.getMessage()}"
        if suffix:
            line += f" [{' '.join(suffix)}]"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the stderr handler for *app*; safe to call once per app instance."""
    is_testing = app.config.get("TESTING", False)
    is_dev = app.config.get("DEBUG", False) or is_testing

    level_name = os.getenv("LOG_LEVEL", app.config.get("LOG_LEVEL") or ("DEBUG" if is_dev else "INFO"))
    level = getattr(logging, level_name.upper(), logging.INFO)

    fmt = os.getenv("LOG_FORMAT", app.config.get("LOG_FORMAT") or ("readable" if is_dev else "json")).lower()
    if fmt == "json":
        formatter = JSONFormatter()
    else:
        formatter = ReadableFormatter(use_color=sys.stderr.isatty())

    root = logging.getLogger()
    # Tests build many apps; keep exactly one handler
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging ready: level=%s format=%s", level_name.upper(), fmt)
