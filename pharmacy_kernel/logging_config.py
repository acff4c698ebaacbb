"""
Structured JSON logging for the pharmacy stock engine.

Every record is one JSON line carrying:
    ts, level, logger, message
    the bound context (invoice_id, batch_id, item_id, correlation_id, trace_id)
    any ``extra={...}`` fields passed by the caller
    for engine exceptions: exc_code plus the exception's public attributes
    (e.g. ``exc_shortfalls`` for InsufficientStockError)

Event names are snake_case verbs ("stock_deducted", "sale_invoice_committed")
so that log queries can match on ``message`` exactly.
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
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterator
from uuid import UUID

_LOGGER_PREFIX = "pharmacy_engine"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = frozenset(
    {"correlation_id", "invoice_id", "batch_id", "item_id", "trace_id"}
)

_context: ContextVar[dict[str, str]] = ContextVar("pharmacy_log_context", default={})


def _checked(fields: dict[str, Any]) -> dict[str, str]:
    unknown = set(fields) - _CONTEXT_FIELDS
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
    return {k: str(v) for k, v in fields.items() if v is not None}


class LogContext:
    """
    Per-thread (and per-task) fields merged into every log record.

    Backed by a single ContextVar holding an immutable snapshot, so a
    ``bind`` block restores exactly what was there before it.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Merge non-None fields into the current context."""
        _context.set({**_context.get(), **_checked(fields)})

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set({**_context.get(), **_checked(fields)})
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """UUIDs, dates and Decimals as strings; dataclasses as dicts."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (UUID, Decimal)):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        return super().default(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Public attributes of PharmacyEngineError subclasses (field, shortfalls, ...)
    for key, val in vars(exc).items():
        if not key.startswith("_") and key != "code":
            fields[f"exc_{key}"] = val
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        payload.update(
            (key, val)
            for key, val in vars(record).items()
            if key not in _STDLIB_KEYS and key not in payload
        )

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder, default=str)


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``pharmacy_engine`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``pharmacy_engine`` logger.

    Idempotent: only the first call in a process has an effect, so hosts
    may call it from every entry point.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

        root = logging.getLogger(_LOGGER_PREFIX)
        root.setLevel(level)
        root.propagate = False
        out = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        out.setFormatter(StructuredFormatter())
        root.addHandler(out)


def reset_logging() -> None:
    """Drop handlers and allow ``configure_logging`` again. Tests only."""
    global _configured
    with _lock:
        _configured = False
        root = logging.getLogger(_LOGGER_PREFIX)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
