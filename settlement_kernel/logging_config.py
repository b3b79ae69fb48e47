"""
Structured logging for settlement runs.

Every line is one JSON object.  On top of the message and the ``extra``
fields a call site passes, each line carries the settlement trace bound
through LogContext:

    correlation_id  one per settle() call, returned on SettlementFailed
    trace_id        the caller's idempotency key, when given
    order_number    once allocated
    payer_id        the resolved customer or casual buyer
    actor_id        who asked for the settlement
    stage           the pipeline stage running (validate, price, ... commit)

When a record carries an exception, it is rendered under one ``error``
object.  SettlementError subclasses contribute their code, HTTP status
class and the figures they carry (``to_details()``), so a rejected
credit check logs ``required`` and ``available`` next to the stage that
raised it.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

TRACE_FIELDS = ("correlation_id", "trace_id", "order_number", "payer_id", "actor_id", "stage")

_trace: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"settlement_{name}", default=None) for name in TRACE_FIELDS
}


def _var(name: str) -> ContextVar[str | None]:
    try:
        return _trace[name]
    except KeyError:
        raise TypeError(f"Unknown log trace field: {name}") from None


class LogContext:
    """Settlement trace fields, scoped per thread and per asyncio task."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Overwrite the given fields; None values are ignored."""
        for name, value in fields.items():
            if value is not None:
                _var(name).set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {name: var.get() for name, var in _trace.items() if var.get() is not None}

    @staticmethod
    def clear() -> None:
        for var in _trace.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """
        Bind fields for the duration of a block.

        On exit every bound field returns to the value it had on entry,
        including fields overwritten with set() inside the block.
        """
        tokens: list[tuple[ContextVar[str | None], Token]] = []
        for name, value in fields.items():
            var = _var(name)
            if value is not None:
                tokens.append((var, var.set(value)))
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        # Money stays exact on the wire
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
    status = getattr(exc, "http_status", None)
    if status is not None:
        error["status"] = status
    to_details = getattr(exc, "to_details", None)
    if callable(to_details):
        error["details"] = to_details()
    return error


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: trace, extras, then the error if any."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                line.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            line["error"] = _error_fields(record.exc_info[1])
            if record.levelno >= logging.ERROR:
                line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

ROOT_LOGGER = "settlement_kernel"

_configured = False
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``settlement_kernel`` hierarchy."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the settlement_kernel logger. Later calls are no-ops."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    out = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    out.setFormatter(StructuredFormatter())

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(out)


def reset_logging() -> None:
    """Detach handlers and allow configure_logging() again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
