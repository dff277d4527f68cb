"""Logging setup for wikigate.

Two output formats share one record layout:

    json  one object per line, for log shippers
    text  one human-readable line, for development

Authorization records (decisions, denials, evaluation errors) carry the
``resource_kind``, ``resource_id``, ``operation``, ``outcome`` and ``user``
extras. Both formatters group those under a single ``authz`` context so a
denial can be traced to the resource and the request that caused it.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Set per request by RequestContextMiddleware.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

AUTHZ_FIELDS = ("resource_kind", "resource_id", "operation", "outcome", "user")

_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


def authz_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The authorization extras present on *record*, in a fixed order."""
    return {name: getattr(record, name) for name in AUTHZ_FIELDS if hasattr(record, name)}


class _JsonFormatter(logging.Formatter):
    """``{"timestamp", "level", "logger", "message", "request_id", "authz", ...}``.

    Extras outside the authorization set stay top-level.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        authz = authz_context(record)
        if authz:
            entry["authz"] = authz

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in AUTHZ_FIELDS or key in entry:
                continue
            entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _TextFormatter(logging.Formatter):
    """``time level logger [request] message (kind id op outcome user)``."""

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record, self.datefmt)} {record.levelname:<7} {record.name}"
        request_id = request_id_var.get()
        if request_id:
            line += f" [{request_id}]"
        line += f" {record.getMessage()}"

        authz = authz_context(record)
        if authz:
            line += " (" + " ".join(f"{k}={v}" for k, v in authz.items()) + ")"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# Tokens and passwords never reach the output.
_SECRETS = (
    re.compile(r"(?i)(bearer\s+)[\w.\-]{20,}"),
    re.compile(r"(?i)((?:password|secret|token|authorization)\s*[=:]\s*)[^\s,'\"]{8,}"),
)


def redact(text: str) -> str:
    for pattern in _SECRETS:
        text = pattern.sub(r"\1***REDACTED***", text)
    return text


class _SecretFilter(logging.Filter):
    """Redacts the rendered message and any cached exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact(record.getMessage())
        record.args = ()
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install the wikigate handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to INFO.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SecretFilter())
    handler.setFormatter(_JsonFormatter() if fmt == "json" else _TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "passlib"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"log_level": level, "log_format": fmt})
