"""
Structured JSON logging for the balance kernel.

Every record is one JSON line.  Fields bound with ``LogContext.bind`` (the
reconciliation run's correlation id, ledger, period and dimension) are added
to each record logged inside the block, on the current thread or task only.
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any

_LOGGER_PREFIX = "balance_kernel"
_HANDLER_NAME = "balance_kernel.structured"


class LogContext:
    """Run-scoped fields attached to every record logged inside ``bind``."""

    FIELDS = ("correlation_id", "ledger", "period", "dimension")

    _fields: ContextVar[dict[str, str]] = ContextVar("balance_log_fields")

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get({}))

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """
        Add fields for the duration of the block; None values are skipped.

        Raises:
            TypeError: A field name outside ``FIELDS``.
        """
        unknown = set(fields) - set(cls.FIELDS)
        if unknown:
            raise TypeError(f"unknown log context field(s): {sorted(unknown)}")
        merged = cls.get_all()
        merged.update((k, v) for k, v in fields.items() if v is not None)
        token = cls._fields.set(merged)
        try:
            yield
        finally:
            cls._fields.reset(token)

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    # Decimal quantities keep their exact textual form; UUIDs and anything
    # else fall back to str
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, val in vars(record).items():
            if key not in _RECORD_ATTRS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """exc_type / exc_message, plus code and public attributes of kernel errors."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the balance_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Send balance_kernel records to ``handler`` (stderr by default) as JSON.

    Idempotent: once the structured handler is installed, later calls change
    nothing until ``reset_logging``.
    """
    root = logging.getLogger(_LOGGER_PREFIX)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    root.setLevel(level)
    root.propagate = False
    h = handler if handler is not None else logging.StreamHandler(sys.stderr)
    h.set_name(_HANDLER_NAME)
    h.setFormatter(StructuredFormatter())
    root.addHandler(h)


def reset_logging() -> None:
    """Remove the kernel's handlers. FOR TESTING ONLY."""
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
