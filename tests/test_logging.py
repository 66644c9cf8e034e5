"""Tests for the structured logging system (balance_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from balance_kernel.exceptions import SnapshotConflictError
from balance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        [record] = _parse_all_logs(stream)
        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "balance_kernel.test"
        assert "ts" in record

    def test_extra_fields_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        snapshot_id = uuid4()
        get_logger("test").info(
            "snapshot_created",
            extra={
                "snapshot_id": snapshot_id,
                "closing_balance": Decimal("-5.250"),
                "period_start": date(2024, 3, 1),
            },
        )

        [record] = _parse_all_logs(stream)
        assert record["snapshot_id"] == str(snapshot_id)
        assert record["closing_balance"] == "-5.250"
        assert record["period_start"] == "2024-03-01"

    def test_kernel_error_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise SnapshotConflictError("stock", "rm-1", "Mar-2024", "")
        except SnapshotConflictError:
            get_logger("test").warning("write_failed", exc_info=True)

        [record] = _parse_all_logs(stream)
        assert record["exc_type"] == "SnapshotConflictError"
        assert record["exc_code"] == "SNAPSHOT_CONFLICT"
        assert record["exc_entity_id"] == "rm-1"
        assert "traceback" in record


class TestLogContext:
    def test_bind_adds_and_restores_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        with LogContext.bind(ledger="stock", period="Mar-2024"):
            logger.info("inside")
        logger.info("outside")

        inside, outside = _parse_all_logs(stream)
        assert inside["ledger"] == "stock"
        assert inside["period"] == "Mar-2024"
        assert "ledger" not in outside

    def test_none_values_are_not_bound(self):
        with LogContext.bind(ledger="stock", dimension=None):
            assert LogContext.get_all() == {"ledger": "stock"}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(ledger="stock"):
            with LogContext.bind(ledger="inventory"):
                assert LogContext.get_all()["ledger"] == "inventory"
            assert LogContext.get_all()["ledger"] == "stock"

    def test_clear_inside_bind(self):
        with LogContext.bind(correlation_id="abc", ledger="stock"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with LogContext.bind(actor="someone"):
                pass

    def test_fields_reach_records_in_other_loggers(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        with LogContext.bind(correlation_id="run-1", dimension="Roasting"):
            get_logger("store.sql").info("snapshot_created")

        [record] = _parse_all_logs(stream)
        assert record["correlation_id"] == "run-1"
        assert record["dimension"] == "Roasting"


class TestConfigureLogging:
    def test_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        assert len(logging.getLogger("balance_kernel").handlers) == 1

    def test_level_respected(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        logger = get_logger("test")
        logger.info("dropped")
        logger.warning("kept")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["kept"]

    def test_does_not_propagate_to_root(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert logging.getLogger("balance_kernel").propagate is False
