"""
Pytest fixtures for the balance kernel test suite.

Provides:
- In-memory store seeded per test through small factory helpers
- SQLite in-memory SQLAlchemy sessions for SQL store tests
- Deterministic clock and the bundled ledger profiles
- Captured JSON logs

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL for the SQL store tests.  Defaults
  to an in-memory SQLite database.
"""

import json
import logging
import os
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from balance_config import get_active_profiles
from balance_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from balance_kernel.domain.clock import DeterministicClock
from balance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from balance_kernel.models import Product, RawMaterial
from balance_kernel.services.reconciliation_service import ReconciliationService
from balance_kernel.store.memory import InMemoryBalanceStore
from balance_kernel.store.sql import SqlBalanceStore

DEFAULT_TEST_DB_URL = "sqlite://"

MARCH_2024 = date(2024, 3, 15)
FEBRUARY_2024 = date(2024, 2, 10)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture balance_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.reconcile_period("stock", MARCH_2024)
            logs = captured_logs()
            assert any(r["message"] == "reconciliation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("balance_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 31, 18, 0, 0, tzinfo=UTC))


@pytest.fixture(scope="session")
def profiles():
    """The bundled stock / production / inventory profiles."""
    return get_active_profiles()


# =============================================================================
# In-memory store
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryBalanceStore:
    return InMemoryBalanceStore()


@pytest.fixture
def service(memory_store, profiles, clock) -> ReconciliationService:
    return ReconciliationService(memory_store, profiles, clock)


@pytest.fixture
def add_material(memory_store):
    """Factory: add a raw material to the in-memory store, return its id."""

    def _add(name: str = "Turmeric", current_stock="0", min_stock="0", **kwargs) -> str:
        return memory_store.add_entity(
            "raw_materials",
            name=name,
            current_stock=Decimal(str(current_stock)),
            min_stock=Decimal(str(min_stock)),
            **kwargs,
        )

    return _add


@pytest.fixture
def add_product(memory_store):
    """Factory: add a product to the in-memory store, return its id."""

    def _add(name: str = "Garam Masala 100g", current_stock="0", min_stock="0", **kwargs) -> str:
        return memory_store.add_entity(
            "products",
            name=name,
            unit="pack",
            current_stock=Decimal(str(current_stock)),
            min_stock=Decimal(str(min_stock)),
            **kwargs,
        )

    return _add


# =============================================================================
# SQL store (SQLite in-memory unless DATABASE_URL is set)
# =============================================================================


@pytest.fixture
def sql_session() -> Generator[Session, None, None]:
    """Fresh schema per test; the session is rolled back and the tables dropped."""
    init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_TEST_DB_URL))
    create_tables()
    session = get_session()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        drop_tables()
        reset_engine()


@pytest.fixture
def sql_store(sql_session) -> SqlBalanceStore:
    return SqlBalanceStore(sql_session)


@pytest.fixture
def sql_material(sql_session):
    """Factory: insert a RawMaterial row, return its id as a string."""
    counter = {"n": 0}

    def _add(name: str = "Turmeric", current_stock="0", min_stock="0") -> str:
        counter["n"] += 1
        row = RawMaterial(
            code=f"RM-{counter['n']:03d}",
            name=name,
            category="Whole Spice",
            unit="kg",
            current_stock=Decimal(str(current_stock)),
            min_stock=Decimal(str(min_stock)),
        )
        sql_session.add(row)
        sql_session.flush()
        return str(row.id)

    return _add


@pytest.fixture
def sql_product(sql_session):
    """Factory: insert a Product row, return its id as a string."""
    counter = {"n": 0}

    def _add(name: str = "Garam Masala 100g", current_stock="0", min_stock="0") -> str:
        counter["n"] += 1
        row = Product(
            sku=f"SKU-{counter['n']:03d}",
            name=name,
            category="Blend",
            unit="pack",
            unit_price=Decimal("4.50"),
            current_stock=Decimal(str(current_stock)),
            min_stock=Decimal(str(min_stock)),
        )
        sql_session.add(row)
        sql_session.flush()
        return str(row.id)

    return _add
