"""
Structured JSON logging for the ledger kernel.

Every record under the ``ledger_kernel`` logger is one JSON line: the
event name as ``message``, the ``extra`` fields the call site passed, and
the ledger scope (school, academic year, owning LedgerContext) that was
bound while the record was emitted.  Amounts arrive as Decimal and are
written as strings so no precision is lost.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Iterator

# ---------------------------------------------------------------------------
# Ledger scope
# ---------------------------------------------------------------------------

_SCOPE_FIELDS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"ledger_log_{name}", default=None)
    for name in ("school_id", "academic_year_id", "context_id")
}


class LogContext:
    """Ledger scope stamped onto every record while it is bound."""

    @staticmethod
    def get_all() -> dict[str, str]:
        scope: dict[str, str] = {}
        for name, var in _SCOPE_FIELDS.items():
            value = var.get()
            if value is not None:
                scope[name] = value
        return scope

    @staticmethod
    def clear() -> None:
        for var in _SCOPE_FIELDS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(
        *,
        school_id: str | None = None,
        academic_year_id: str | None = None,
        context_id: str | None = None,
    ) -> Iterator[None]:
        """Set the given fields for the block; the previous values come back on exit."""
        values = {
            "school_id": school_id,
            "academic_year_id": academic_year_id,
            "context_id": context_id,
        }
        tokens = [
            (_SCOPE_FIELDS[name], _SCOPE_FIELDS[name].set(value))
            for name, value in values.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            # LedgerKernelError subclasses carry a machine-readable code
            if hasattr(exc, "code"):
                payload["exc_code"] = exc.code
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "ledger_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ledger_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler (stderr by default) to ledger_kernel; idempotent."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Drop the handler and the configured flag. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
