"""Logging configuration for lms-service.

LOGS IN A MULTI-TENANT SERVICE
--------------------------------
Every log line written while handling a request can be tied back to:

  request_id   which request (RequestContextMiddleware)
  user_id      who asked (set once the bearer token is resolved)
  tenant_id    on behalf of which tenant ("-" for a global principal)

Access denials are answered with a bland 404 so callers cannot tell
"doesn't exist" from "belongs to someone else".  The log line is where
the real reason lives, so these fields matter more here than usual:

  WARNING  Access denied: user=17 tenant=2 cross-tenant access to client id=40 of tenant=3

Metrics (app/core/metrics.py) answer "how often"; logs answer "who, and
on which request".

WHY TWO FORMATTERS
--------------------
  _ContainerFormatter: human-readable, single-line, for local dev.

  _JsonFormatter: one JSON object per line, for production log
    aggregation.  Context fields become top-level keys, so
    `tenant_id == 3 AND level == "WARNING"` is a plain query.

    Set LOG_JSON=true to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str] = ContextVar("user_id", default="-")
tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="-")


def bind_principal(user_id: int, tenant_id: int | None) -> None:
    """Attach the resolved principal to the current request context."""
    user_id_var.set(str(user_id))
    tenant_id_var.set("-" if tenant_id is None else str(tenant_id))


class RequestContextFilter(logging.Filter):
    """Adds request_id, user_id and tenant_id to every LogRecord.

    Installed on the handler, not a logger: logger filters do not see
    records propagated up from child loggers.  Values passed explicitly
    via `extra=` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        if not hasattr(record, "user_id"):
            record.user_id = user_id_var.get()  # type: ignore[attr-defined]
        if not hasattr(record, "tenant_id"):
            record.tenant_id = tenant_id_var.get()  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    - Always: ISO-8601 timestamp, level, logger name, message
    - WARNING+: appends [filename:lineno] so you can locate the guard clause
    - ERROR/CRITICAL: stack trace included when exc_info is present
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Insert .NNN before the timezone offset (last 5 chars: +0000)
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON Lines formatter.

    Context fields attached by the request context filter or passed via
    `extra=` appear as top-level keys; "-" placeholders are omitted.
    """

    _CONTEXT_FIELDS = (
        "request_id",
        "user_id",
        "tenant_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None and value != "-":
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
                     Controlled by LOG_JSON in Settings.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Keep third-party loggers from flooding at DEBUG
    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "sqlalchemy.engine",
        "aiosqlite",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
