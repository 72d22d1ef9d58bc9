"""
Ledger logging: one JSON object per line on the ``rent_ledger`` logger tree.

Every line carries ``ts``, ``level``, ``logger`` and ``message``, then the
ledger identifiers bound for the current operation (see LogContext), then
whatever the call site passed in ``extra``.  A logged exception lands under
``error``; RentLedgerError subclasses contribute their ``code`` and the
structured attributes they carry, so an operator can filter on
``error.code == "GATEWAY_UNAVAILABLE"`` without parsing messages.

Usage:
    logger = get_logger("services.ledger")
    with LogContext.bind(tenant_id=tenant_id, order_id=order_id):
        logger.info("order_created", extra={"amount_minor": 1_000_000})
"""

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from typing import IO, Any, Iterator, Mapping

from rent_ledger.exceptions import RentLedgerError

ROOT_LOGGER = "rent_ledger"

# Identifiers a ledger operation may bind, in output order.
CONTEXT_FIELDS = ("actor_id", "tenant_id", "owner_id", "order_id", "record_id")

# Replaced on every bind, never mutated in place.
_bound: ContextVar[Mapping[str, str]] = ContextVar("rent_ledger_log_context", default={})


class LogContext:
    """Ledger identifiers attached to every line logged in this context."""

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Attach identifiers for the duration of the block.

        None values are skipped, everything else is stored as ``str``.
        Nested binds layer over the outer ones and are undone on exit.
        """
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context fields: {', '.join(sorted(unknown))}")
        merged = dict(_bound.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _bound.set(merged)
        try:
            yield
        finally:
            _bound.reset(token)

    @staticmethod
    def get_all() -> dict[str, str]:
        current = _bound.get()
        return {k: current[k] for k in CONTEXT_FIELDS if k in current}

    @staticmethod
    def clear() -> None:
        _bound.set({})


def _json_default(obj: Any) -> str:
    # UUID and Decimal render as their str(); datetimes keep the ISO "T"
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, RentLedgerError):
        fields["code"] = exc.code
        fields.update({k: v for k, v in vars(exc).items() if not k.startswith("_")})
    return fields


# Attributes every LogRecord has; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        line.update(LogContext.get_all())
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                line.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            line["error"] = _exception_fields(record.exc_info[1])
            line["traceback"] = self.formatException(record.exc_info)

        return json.dumps(line, default=_json_default)


class _LedgerHandler(logging.StreamHandler):
    """Marks the handler configure_logging installed."""


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(level: int = logging.INFO, stream: IO[str] | None = None) -> None:
    """
    Send ``rent_ledger`` logs to ``stream`` (stderr by default) as JSON.

    Only the first call takes effect; later calls, including the one engine
    initialization makes, leave an existing setup alone.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if any(isinstance(h, _LedgerHandler) for h in root.handlers):
        return
    handler = _LedgerHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False


def reset_logging() -> None:
    """Undo configure_logging (tests only)."""
    root = logging.getLogger(ROOT_LOGGER)
    for handler in [h for h in root.handlers if isinstance(h, _LedgerHandler)]:
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
