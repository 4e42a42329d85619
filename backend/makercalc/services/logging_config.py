"""
Log setup for the engine and the HTTP adapter.

One stdout handler on the root logger: JSON lines in production
(LOG_FORMAT=json), a short text layout for local runs.
"""
import json
import logging
import sys
from datetime import datetime, timezone

# Attributes passed through `extra=` that end up as top-level JSON keys
CONTEXT_KEYS = (
    "quote_id",
    "request_id",
    "duration_ms",
    "http_method",
    "http_path",
    "http_status",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"

# Third-party loggers kept at WARNING whatever the app level is
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


class JSONFormatter(logging.Formatter):
    """One JSON object per record; Decimals and dates are stringified."""

    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({k: getattr(record, k) for k in CONTEXT_KEYS if hasattr(record, k)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    """Install the stdout handler on the root logger and return it."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
